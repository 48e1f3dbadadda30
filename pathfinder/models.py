import uuid
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class GrowthPotential(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


def new_subject_id() -> str:
    return uuid.uuid4().hex


class SubjectEntry(BaseModel):
    """A subject/grade pair as edited in the form. grade is '' or '0'..'100'."""
    id: str = Field(default_factory=new_subject_id)
    name: str = ""
    grade: str = ""

    def is_complete(self) -> bool:
        return bool(self.name and self.grade)


class CareerRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    description: str
    why_fit: str = Field(..., alias="whyFit")
    next_steps: List[str] = Field(..., alias="nextSteps")
    growth_potential: GrowthPotential = Field(..., alias="growthPotential")


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    recommendations: List[CareerRecommendation]
    overall_summary: str = Field(..., alias="overallSummary")

    @property
    def titles(self) -> List[str]:
        return [r.title for r in self.recommendations]

    def to_wire(self) -> dict:
        """Camel-cased dict, identical in shape to what the model returned"""
        return self.model_dump(mode="json", by_alias=True)


class ChatMessage(BaseModel):
    role: Role
    text: str = ""
