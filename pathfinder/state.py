import re
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from pathfinder.advisor import AdvisorChat, create_advisor_chat
from pathfinder.errors import InputValidationError
from pathfinder.models import ChatMessage, RecommendationResponse, Role, SubjectEntry
from pathfinder.prompt import MIN_SUBJECTS, AdvisorMessages
from pathfinder.recommender import get_career_recommendations


logger = logging.getLogger(__name__)

_GRADE_RE = re.compile(r"[0-9]{1,3}")

UpdateCallback = Callable[["CareerPathFinder"], Awaitable[None]]


class Phase(str, Enum):
    FORM = "form"
    SUBMITTING = "submitting"
    RESULTS = "results"


def validate_grade(value: str) -> str:
    """Return the grade to store, or raise InputValidationError"""
    if value == "":
        return value
    if not _GRADE_RE.fullmatch(value) or int(value) > 100:
        raise InputValidationError(AdvisorMessages.INVALID_GRADE)
    return value


class CareerPathFinder:
    """
    Owns everything one student sees: subjects, the recommendation result,
    the chat transcript and the single advisor chat handle.

    form -> submitting -> results (chat idle / awaiting reply) -> reset -> form

    The only I/O happens inside the two injected collaborators.
    """

    def __init__(
        self,
        recommend: Optional[Callable[[List[SubjectEntry]], Awaitable[RecommendationResponse]]] = None,
        create_chat: Optional[Callable[[RecommendationResponse, List[SubjectEntry]], AdvisorChat]] = None,
    ):
        self._recommend = recommend or get_career_recommendations
        self._create_chat = create_chat or create_advisor_chat
        # bumped on reset so replies to a superseded request are dropped
        self._generation = 0
        self._init_state()

    def _init_state(self):
        self.subjects: List[SubjectEntry] = [SubjectEntry()]
        self.phase = Phase.FORM
        self.result: Optional[RecommendationResponse] = None
        self.error: Optional[str] = None
        self.chat_messages: List[ChatMessage] = []
        self.is_chatting = False
        self.chat: Optional[AdvisorChat] = None

    # ==================== SUBJECT EDITING ====================

    def add_subject(self) -> SubjectEntry:
        subject = SubjectEntry()
        self.subjects.append(subject)
        return subject

    def remove_subject(self, subject_id: str) -> bool:
        if len(self.subjects) <= 1:
            return False
        remaining = [s for s in self.subjects if s.id != subject_id]
        if len(remaining) == len(self.subjects):
            return False
        self.subjects = remaining
        return True

    def update_subject(self, subject_id: str, field: str, value: str) -> bool:
        """
        Update name or grade of one subject.

        Raises InputValidationError for a grade that is not an integer in
        [0, 100]; the stored value is left untouched in that case.
        """
        if field not in ("name", "grade"):
            raise InputValidationError(f"Unknown subject field: {field}")

        if field == "grade":
            value = validate_grade(value)

        for idx, subject in enumerate(self.subjects):
            if subject.id == subject_id:
                self.subjects[idx] = subject.model_copy(update={field: value})
                return True
        return False

    def valid_subjects(self) -> List[SubjectEntry]:
        return [s for s in self.subjects if s.is_complete()]

    # ==================== RECOMMENDATIONS ====================

    async def submit(self) -> bool:
        """Request recommendations. Returns True when results are shown."""
        if self.phase != Phase.FORM:
            logger.warning(f" Submit ignored in phase {self.phase.value}")
            return False

        valid = self.valid_subjects()
        if len(valid) < MIN_SUBJECTS:
            self.error = AdvisorMessages.NOT_ENOUGH_SUBJECTS
            return False

        self.phase = Phase.SUBMITTING
        self.error = None
        self.result = None
        self.chat_messages = []
        self.chat = None
        generation = self._generation

        with_percent = [s.model_copy(update={"grade": f"{s.grade}%"}) for s in valid]

        try:
            recommendations = await self._recommend(with_percent)
            if generation != self._generation:
                logger.info(" Discarding recommendations for a session that was reset")
                return False
            chat = self._create_chat(recommendations, with_percent)
        except Exception as e:
            if generation != self._generation:
                return False
            logger.error(f" Recommendation failed: {e}")
            self.error = str(e) or AdvisorMessages.GENERIC_ERROR
            self.phase = Phase.FORM
            return False

        self.result = recommendations
        self.chat = chat
        self.chat_messages = [ChatMessage(role=Role.MODEL, text=AdvisorMessages.GREETING)]
        self.phase = Phase.RESULTS
        return True

    # ==================== CHAT ====================

    async def send_chat_message(self, text: str, on_update: Optional[UpdateCallback] = None) -> bool:
        """
        Send one chat turn and stream the reply into the transcript tail.

        on_update is awaited after each transcript change. Returns False when
        the message was not accepted (empty, no chat, or reply in flight).
        """
        message = (text or "").strip()
        if not message or self.is_chatting or self.chat is None:
            return False

        chat = self.chat
        generation = self._generation
        self.is_chatting = True
        self.chat_messages.append(ChatMessage(role=Role.USER, text=message))
        self.chat_messages.append(ChatMessage(role=Role.MODEL, text=""))

        full_text = ""
        try:
            if on_update:
                await on_update(self)
            async for fragment in chat.send_message_stream(message):
                if generation != self._generation:
                    break
                full_text += fragment
                self.chat_messages[-1] = ChatMessage(role=Role.MODEL, text=full_text)
                if on_update:
                    await on_update(self)
        except Exception as e:
            if generation == self._generation:
                logger.error(f" Chat error: {e}")
                full_text = ""
            else:
                return False
        finally:
            if generation == self._generation:
                self.is_chatting = False

        if generation != self._generation:
            return False

        if not full_text:
            self.chat_messages[-1] = ChatMessage(role=Role.MODEL, text=AdvisorMessages.CHAT_ERROR)
            if on_update:
                await on_update(self)
        return True

    # ==================== RESET ====================

    def reset(self):
        self._generation += 1
        self._init_state()

    def snapshot(self) -> Dict:
        return {
            "phase": self.phase.value,
            "subjects": [s.model_dump() for s in self.subjects],
            "error": self.error,
            "result": self.result.to_wire() if self.result else None,
            "chat_messages": [m.model_dump(mode="json") for m in self.chat_messages],
            "is_chatting": self.is_chatting,
        }
