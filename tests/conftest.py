"""Shared test fixtures for the lighthouse game."""

from pathlib import Path

import pytest

import lighthouse_game
import ui_server
from lighthouse_game import GameState, ParsedTranslation, TranslationServiceError, new_game_state


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=None):
        self._payload = payload
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.text = text if text is not None else repr(payload)

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeChat:
    """Stands in for MistralChat inside the Flask app."""

    def __init__(self, result=None, explanation="", error=None, available=True):
        self.result = result or ParsedTranslation(command="look", narration="Fog everywhere.")
        self.explanation = explanation
        self.error = error
        self._available = available
        self.calls = []

    def available(self):
        return self._available

    def interpret(self, player_input, summary, language="en"):
        self.calls.append(("interpret", player_input, summary, language))
        if self.error:
            raise self.error
        return self.result

    def explain_failure(self, command, reason, summary, language="en"):
        self.calls.append(("explain", command, reason, summary, language))
        if self.error:
            raise self.error
        return self.explanation


class FakeSession:
    """Stands in for requests.Session inside InterpretationClient."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture(autouse=True)
def dev_log_path(tmp_path: Path, monkeypatch):
    path = tmp_path / "game_dev.log"
    monkeypatch.setattr(lighthouse_game, "DEV_LOG_PATH", str(path))
    return path


@pytest.fixture
def state() -> GameState:
    return new_game_state("en")


@pytest.fixture
def fake_chat(monkeypatch) -> FakeChat:
    chat = FakeChat()
    monkeypatch.setattr(ui_server, "CLIENT", chat)
    return chat


@pytest.fixture
def client(fake_chat):
    ui_server.app.config["TESTING"] = True
    with ui_server.app.test_client() as client:
        yield client


@pytest.fixture
def upstream_error():
    return TranslationServiceError("Mistral API error: 503")
