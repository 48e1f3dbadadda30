import copy
from types import SimpleNamespace

import pytest

from pathfinder.errors import ChatStreamError
from pathfinder.models import RecommendationResponse, SubjectEntry


SAMPLE_RESPONSE = {
    "recommendations": [
        {
            "title": "Software Engineer",
            "description": "Designs and builds software systems.",
            "whyFit": "Your **90%** in Mathematics shows strong logical reasoning.",
            "nextSteps": ["Learn Python", "Build a small project"],
            "growthPotential": "High"
        },
        {
            "title": "Chemical Engineer",
            "description": "Turns lab chemistry into industrial processes.",
            "whyFit": "Solid Chemistry and Physics grades.",
            "nextSteps": ["Take AP Chemistry", "Visit a plant"],
            "growthPotential": "Medium"
        },
        {
            "title": "Physicist",
            "description": "Studies how the universe works.",
            "whyFit": "Physics at 85% is a strong signal.",
            "nextSteps": ["Join a physics olympiad"],
            "growthPotential": "Medium"
        },
        {
            "title": "Lab Technician",
            "description": "Runs experiments and maintains equipment.",
            "whyFit": "Hands-on science strengths.",
            "nextSteps": [],
            "growthPotential": "Low"
        }
    ],
    "overallSummary": "You are a strong **STEM** candidate."
}


@pytest.fixture
def sample_payload():
    return copy.deepcopy(SAMPLE_RESPONSE)


@pytest.fixture
def sample_response():
    return RecommendationResponse.model_validate(SAMPLE_RESPONSE)


@pytest.fixture
def graded_subjects():
    return [
        SubjectEntry(name="Mathematics", grade="90%"),
        SubjectEntry(name="Physics", grade="85%"),
        SubjectEntry(name="Chemistry", grade="78%"),
    ]


@pytest.fixture
def gemini_env(monkeypatch):
    """API key present, SDK configuration stubbed out"""
    import pathfinder.gemini as gemini

    calls = []
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("GEMINI_MODEL", raising=False)
    monkeypatch.setattr(gemini.genai, "configure", lambda **kwargs: calls.append(kwargs))
    return calls


# ==================== GEMINI SDK FAKES ====================

class FakeChunk:
    def __init__(self, text):
        self.text = text


class FakeStream:
    def __init__(self, fragments, fail_at=None):
        self.fragments = fragments
        self.fail_at = fail_at

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for idx, fragment in enumerate(self.fragments):
            if self.fail_at is not None and idx == self.fail_at:
                raise RuntimeError("stream interrupted")
            yield FakeChunk(fragment)


class FakeGeminiChat:
    """Stands in for genai.ChatSession; replies come from a shared script"""

    def __init__(self, history, script):
        self._history = list(history)
        self.script = script
        self.sent = []
        # set to mimic the SDK after a reply that finished badly
        self.broken = False

    @property
    def history(self):
        if self.broken:
            raise RuntimeError("BrokenResponseError: the last response did not finish")
        return self._history

    async def send_message_async(self, message, stream=False):
        assert stream is True
        self.sent.append(message)
        reply = self.script.pop(0)
        if isinstance(reply, Exception):
            raise reply
        fragments, fail_at = reply
        self._history.append(("user", message))
        if fail_at is None:
            self._history.append(("model", "".join(fragments)))
        return FakeStream(fragments, fail_at)


@pytest.fixture
def fake_genai(monkeypatch, gemini_env):
    """Replace genai.GenerativeModel with a recorder; push replies onto .script"""
    import pathfinder.advisor as advisor

    ns = SimpleNamespace(models=[], chats=[], script=[])

    class FakeGenerativeModel:
        def __init__(self, model_name, system_instruction=None, generation_config=None):
            self.model_name = model_name
            self.system_instruction = system_instruction
            self.generation_config = generation_config
            ns.models.append(self)

        def start_chat(self, history):
            chat = FakeGeminiChat(history, ns.script)
            ns.chats.append(chat)
            return chat

    monkeypatch.setattr(advisor.genai, "GenerativeModel", FakeGenerativeModel)
    return ns


# ==================== STATE MACHINE FAKES ====================

class FakeAdvisorChat:
    def __init__(self, fragments=None, error_at=None):
        self.fragments = fragments or []
        self.error_at = error_at
        self.sent = []

    async def send_message_stream(self, message):
        self.sent.append(message)
        for idx, fragment in enumerate(self.fragments):
            if self.error_at is not None and idx == self.error_at:
                raise ChatStreamError("stream interrupted")
            yield fragment
        if self.error_at is not None and self.error_at >= len(self.fragments):
            raise ChatStreamError("stream interrupted")


class RecordingRecommender:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def __call__(self, subjects):
        self.calls.append(subjects)
        if self.error:
            raise self.error
        return self.result


class RecordingChatFactory:
    def __init__(self, chat=None, error=None):
        self.chat = chat or FakeAdvisorChat()
        self.error = error
        self.calls = []

    def __call__(self, context, subjects):
        self.calls.append((context, subjects))
        if self.error:
            raise self.error
        return self.chat
