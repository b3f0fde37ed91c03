"""FSM states for chat mode."""

from aiogram.fsm.state import State, StatesGroup


class ChatStates(StatesGroup):
    """States for chat mode.

    States:
        chatting: User is talking to the course assistant
        ingesting: An uploaded document is being processed
    """

    chatting = State()
    ingesting = State()
