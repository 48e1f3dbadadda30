import logging
from typing import AsyncIterator, List

import google.generativeai as genai

from pathfinder.errors import ChatStreamError
from pathfinder.gemini import configure_gemini
from pathfinder.models import RecommendationResponse, SubjectEntry
from pathfinder.prompt import CareerAdvisorPrompts


logger = logging.getLogger(__name__)


class AdvisorChat:
    """Stateful Gemini chat bound to one recommendation result.

    The system instruction is fixed when the chat is created. Every turn sees
    the whole conversation so far.
    """

    def __init__(self, context: RecommendationResponse, subjects: List[SubjectEntry]):
        self._system_instruction = CareerAdvisorPrompts.build_advisor_instruction(context, subjects)
        model_name = configure_gemini()

        self._model = genai.GenerativeModel(
            model_name,
            system_instruction=self._system_instruction
        )
        self._chat = self._model.start_chat(history=[])
        # history as of the last turn that could be read back
        self._history = []
        self.turns = 0

        logger.info(f" AdvisorChat created for careers: {', '.join(context.titles)}")

    @property
    def system_instruction(self) -> str:
        return self._system_instruction

    async def send_message_stream(self, message: str) -> AsyncIterator[str]:
        """Yield reply fragments in arrival order; raise ChatStreamError on failure"""
        try:
            self._history = list(self._chat.history)
        except Exception as e:
            # the SDK refuses to expose history after a reply that ended badly
            logger.warning(f" Chat history unreadable, restarting from last good turn: {e}")
            self._chat = self._model.start_chat(history=self._history)
        history = self._history

        try:
            response = await self._chat.send_message_async(message, stream=True)
            async for chunk in response:
                text = chunk.text
                if text:
                    yield text
        except Exception as e:
            logger.error(f" Chat stream failed after {self.turns} turns: {e}")
            # drop the broken turn so the next message starts from a clean history
            self._chat = self._model.start_chat(history=history)
            raise ChatStreamError(str(e)) from e

        self.turns += 1


def create_advisor_chat(context: RecommendationResponse, subjects: List[SubjectEntry]) -> AdvisorChat:
    return AdvisorChat(context, subjects)
