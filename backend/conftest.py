"""Pytest configuration, fixtures and collaborator fakes."""

import asyncio
from typing import List

import pytest

from flowchat.conversation.assistant import ConversationCollaborator
from flowchat.conversation.models import CollaboratorReply, ConversationMessage
from flowchat.inference.base import LLMClient


class ScriptedCollaborator(ConversationCollaborator):
    """Answers each turn with the next scripted reply and records the transcripts."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: List[List[ConversationMessage]] = []

    async def converse(self, messages):
        self.calls.append(list(messages))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class BlockingCollaborator(ConversationCollaborator):
    """Holds every call until release() is called."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = 0
        # create inside the running loop
        self.started = asyncio.Event()
        self._release = asyncio.Event()

    def release(self):
        self._release.set()

    async def converse(self, messages):
        self.calls += 1
        self.started.set()
        await self._release.wait()
        return self.reply


class FakeLLMClient(LLMClient):
    def __init__(self, *outputs):
        self.outputs = list(outputs)
        self.requests = []

    def generate(self, messages):
        self.requests.append(messages)
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return output



@pytest.fixture
def click_question():
    return CollaboratorReply.question("What happens on click?")


@pytest.fixture
def start_end_diagram():
    return {"type": "diagram", "content": "A[Start] --> B[End]"}
