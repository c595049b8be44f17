class OrchestratorError(Exception):
    """Base class for every error raised by the orchestrator core."""


class ConfigError(OrchestratorError):
    """Raised when config loading or validation fails."""


class GenerationError(OrchestratorError):
    """Raised when the structured generation service fails or returns an unusable object."""


class PlanGenerationError(OrchestratorError):
    """Raised when a workflow plan could not be generated."""


class PlanValidationError(PlanGenerationError):
    """Raised when a generated plan fails validation."""


class EmptyPlan(PlanValidationError):
    """Raised when a generated plan has no steps."""


class InvalidAgentType(PlanValidationError):
    """Raised when a plan step references an agent type the registry does not know."""

    def __init__(self, agent_type: str, step_index: int):
        super().__init__(f"Generated plan uses invalid agent type: {agent_type} (step {step_index})")
        self.agent_type = agent_type
        self.step_index = step_index


class InvalidDependency(PlanValidationError):
    """Raised when a plan step depends on a missing step, on itself, or on a cycle."""


class StepExecutionError(OrchestratorError):
    """Raised when a single workflow step fails. Absorbed by the executor."""

    def __init__(self, step_index: int, agent_type: str, reason: str):
        super().__init__(f"Step {step_index} ({agent_type}) failed: {reason}")
        self.step_index = step_index
        self.agent_type = agent_type
        self.reason = reason


class ReplanError(OrchestratorError):
    """Raised when re-planning fails. Absorbed by the executor."""


class OrchestrationCancelled(OrchestratorError):
    """Raised by prepare_context when the run was cancelled by the caller."""
