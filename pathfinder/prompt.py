from typing import List

from pathfinder.models import RecommendationResponse, SubjectEntry


COMMON_SUBJECTS = [
    "Mathematics", "English", "Physics", "Chemistry", "Biology",
    "History", "Geography", "Computer Science", "Economics",
    "Art", "Music", "Psychology", "Sociology", "Business Studies"
]

MIN_SUBJECTS = 3


class AdvisorMessages:
    """Fixed user-facing strings"""
    GREETING = (
        "I've analyzed your subjects and percentages! Feel free to ask me anything "
        "about these career paths or how to get started."
    )
    CHAT_ERROR = "I'm sorry, I encountered an error. Could you try rephrasing that?"
    PARSE_ERROR = "Could not interpret recommendations. Please try again."
    GENERIC_ERROR = "Something went wrong. Please try again."
    NOT_ENOUGH_SUBJECTS = "Please add at least 3 subjects with grades for a better analysis."
    INVALID_GRADE = "Grade must be a whole number between 0 and 100."
    MISSING_API_KEY = "GEMINI_API_KEY not found in environment or .env file!"


class CareerAdvisorPrompts:
    """Prompts and output schema sent to Gemini"""

    # ==================== RECOMMENDATION PROMPT ====================
    RECOMMENDATION_PROMPT = """Analyze the following high school subjects and their percentage grades: {subjects}.
Based on these academic strengths and interests, recommend 4 diverse future career paths.
Consider the difficulty of subjects and how percentage marks reflect potential aptitude and dedication in specific fields."""

    # ==================== OUTPUT SCHEMA ====================
    RECOMMENDATION_SCHEMA = {
        "type": "OBJECT",
        "properties": {
            "recommendations": {
                "type": "ARRAY",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "title": {"type": "STRING"},
                        "description": {"type": "STRING"},
                        "whyFit": {"type": "STRING"},
                        "nextSteps": {
                            "type": "ARRAY",
                            "items": {"type": "STRING"}
                        },
                        "growthPotential": {
                            "type": "STRING",
                            "format": "enum",
                            "enum": ["High", "Medium", "Low"],
                            "description": "Must be 'High', 'Medium', or 'Low'"
                        },
                    },
                    "required": ["title", "description", "whyFit", "nextSteps", "growthPotential"]
                }
            },
            "overallSummary": {"type": "STRING"}
        },
        "required": ["recommendations", "overallSummary"]
    }

    # ==================== ADVISOR SYSTEM PROMPT ====================
    ADVISOR_SYSTEM_PROMPT = """You are an expert Career Advisor AI.
The student has the following profile with percentage grades: {subjects}.
You previously recommended: {careers}.

GUIDELINES:
- Use clean Markdown for formatting (bold for emphasis, bullet points for lists).
- Academic grades are percentages where 90-100% is exceptional, 70-89% is strong, and <50% might indicate a struggle.
- Avoid using excessive headers (###) inside short chat messages.
- Be encouraging and actionable.
- If asked about specific universities or degrees, provide general paths and requirements.
- Keep responses conversational but professional."""

    # ==================== BUILDERS ====================
    @staticmethod
    def build_recommendation_prompt(subjects: List[SubjectEntry]) -> str:
        subjects_str = ", ".join(f"{s.name}: {s.grade}" for s in subjects)
        return CareerAdvisorPrompts.RECOMMENDATION_PROMPT.format(subjects=subjects_str)

    @staticmethod
    def build_advisor_instruction(context: RecommendationResponse, subjects: List[SubjectEntry]) -> str:
        subjects_str = ", ".join(f"{s.name} ({s.grade})" for s in subjects)
        return CareerAdvisorPrompts.ADVISOR_SYSTEM_PROMPT.format(
            subjects=subjects_str,
            careers=", ".join(context.titles)
        )
