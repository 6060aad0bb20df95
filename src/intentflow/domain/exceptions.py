class PipelineError(Exception):
    """Base class for failures of the task-to-transaction pipeline."""


class ParseError(PipelineError):
    """Raised when task text does not follow the '<verb> <amount> <token>' grammar."""

    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"Cannot parse task {text!r}: {reason}")
        self.text = text
        self.reason = reason


class ProtocolNotFoundError(PipelineError):
    """Raised when no market opportunity matches the requested target."""

    def __init__(self, target: str, token: str) -> None:
        super().__init__(f"No {token} opportunity matches protocol {target!r}.")
        self.target = target
        self.token = token


class AddressResolutionError(PipelineError):
    """Raised when a matched protocol or token has no known on-chain address."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No on-chain address is known for {name!r}.")
        self.name = name


class BuildError(PipelineError):
    """Raised when the protocol transaction service returns nothing usable."""


class RegistrationError(BuildError):
    """Raised when the executor identity is not registered with the transaction service."""


class StoreError(PipelineError):
    """Raised when persistence did not return a task identity."""


class TaskNotFoundError(PipelineError):
    """Raised when updating a task identifier that does not exist in the task store."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id '{task_id}' was not found.")
        self.task_id = task_id


class SimulationError(PipelineError):
    """Raised when a dry run of a step would revert."""

    def __init__(self, step_index: int, detail: str) -> None:
        super().__init__(f"Simulation of step {step_index} failed: {detail}")
        self.step_index = step_index
        self.detail = detail


class ExecutionError(PipelineError):
    """Raised when submitting a step or waiting for its receipt fails."""

    def __init__(self, detail: str, *, step_index: int | None = None, tx_hash: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.step_index = step_index
        self.tx_hash = tx_hash
