import anyio
import pytest

from expenser.domain.chat.services import ChatAssistant, ChatBusyError, welcome_message
from expenser.domain.users.schemas import Identity

pytestmark = pytest.mark.anyio


class _FakeClient:
    def __init__(self, reply="Sure."):
        self.reply = reply
        self.questions = []
        self.release = anyio.Event()
        self.block = False

    async def ask(self, text):
        self.questions.append(text)
        if self.block:
            await self.release.wait()
        return self.reply


class TestChatAssistant:
    async def test_starts_with_welcome(self, identity):
        messages = ChatAssistant(_FakeClient()).messages(identity)
        assert len(messages) == 1
        assert messages[0].sender == "ai"
        assert messages[0].text.startswith("Hello Ana!")

    async def test_send_appends_question_and_reply(self, identity):
        client = _FakeClient("Cook at home.")
        assistant = ChatAssistant(client)

        reply = await assistant.send(identity, "How can I save more money?")

        assert reply.text == "Cook at home."
        assert client.questions == ["How can I save more money?"]
        assert [m.sender for m in assistant.messages(identity)] == ["ai", "user", "ai"]
        assert not assistant.is_pending(identity)

    async def test_second_message_while_waiting_is_refused(self, identity):
        client = _FakeClient()
        client.block = True
        assistant = ChatAssistant(client)

        async with anyio.create_task_group() as tg:
            tg.start_soon(assistant.send, identity, "first")
            await anyio.wait_all_tasks_blocked()
            assert assistant.is_pending(identity)
            with pytest.raises(ChatBusyError):
                await assistant.send(identity, "second")
            client.release.set()

        assert client.questions == ["first"]
        assert [m.text for m in assistant.messages(identity)][1:] == ["first", "Sure."]

    async def test_forget(self, identity):
        assistant = ChatAssistant(_FakeClient())
        await assistant.send(identity, "hello")
        assistant.forget(identity.uid)
        assert len(assistant.messages(identity)) == 1


def test_welcome_falls_back_to_email_local_part():
    identity = Identity(uid="u", email="bruno@example.com")
    assert welcome_message(identity).text.startswith("Hello bruno!")
