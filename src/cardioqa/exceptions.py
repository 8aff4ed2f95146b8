class CardioQAError(Exception):
    """Base exception for CardioQA"""

    pass


class TurnError(CardioQAError):
    """A model turn failed before its messages were appended"""

    pass


class ToolArgumentsError(TurnError):
    """Tool arguments from the model failed schema validation"""

    pass


class UnknownToolError(TurnError):
    """The model invoked a tool that is not registered"""

    pass


class ModelStreamError(TurnError):
    """The model provider stream failed mid-turn"""

    pass


class StreamTimeoutError(ModelStreamError):
    """The model provider stream stalled past the configured timeout"""

    pass


class TurnInProgressError(CardioQAError):
    """A turn was submitted while another one is still in flight"""

    pass


class StateAlreadySettledError(CardioQAError):
    """The conversation state was finalized twice in one turn"""

    pass


class PersistenceError(CardioQAError):
    """Saving a conversation failed"""

    pass

