# /helpdesk_bot/models/errors.py

# Errors raised by the external collaborators and the dialog engine.
# Collaborator errors are caught at the flow-step boundary and turned into
# user-facing apologies; none of them should reach the HTTP layer.


class ClassificationError(Exception):
    """The intent classifier could not be reached or returned an unusable body."""


class SearchUnavailable(Exception):
    """The knowledge base search index failed to answer a query."""


class SubmissionFailed(Exception):
    """A ticket could not be created, including the -1 ticket id sentinel."""

    def __init__(self, message: str, ticket_id: int | None = None):
        self.ticket_id = ticket_id
        super().__init__(message)


class PromptValidationError(ValueError):
    """A user answer does not match the shape the pending prompt expects."""


class FlowContractError(RuntimeError):
    """A flow reached a state its step ordering should make impossible."""


class SessionBusy(Exception):
    """Another worker kept the conversation locked past the wait limit."""
