from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

if TYPE_CHECKING:
    from api.v1.infra.jobs.models import Job
    from api.v1.infra.jobs.schemas import JobOutcome

T = TypeVar("T")


class Registry(Generic[T]):
    """Generic registry for pluggable implementations."""

    def __init__(self, name: str):
        self.name = name
        self._implementations: dict[str, T] = {}
        self._frozen = False

    def register(self, name: str, implementation: T) -> None:
        """Register an implementation with a given name."""
        if self._frozen:
            raise RuntimeError(
                f"Cannot register '{name}' in {self.name.lower()} registry: "
                "registry is frozen in production mode"
            )
        self._implementations[name] = implementation

    def get(self, name: str) -> T:
        """Get an implementation by name."""
        if name not in self._implementations:
            raise KeyError(
                f"No {self.name.lower()} implementation registered with name: {name}"
            )
        return self._implementations[name]

    def find(self, name: str) -> T | None:
        """Get an implementation by name, or None when nothing is registered."""
        return self._implementations.get(name)

    def list(self) -> list[str]:
        """List all registered implementation names."""
        return list(self._implementations.keys())

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if the registry is frozen."""
        return self._frozen


class JobHandler(Protocol):
    """Protocol for queue handlers.

    A handler maps a claimed job plus whatever its external calls return to
    a ``JobOutcome``. Raising is allowed; the worker turns any exception into
    a failure outcome for that job only.
    """

    async def handle(self, job: "Job") -> "JobOutcome":
        ...


class JobRegistry(Registry[JobHandler]):
    """Registry of job handlers keyed by queue name."""

    def __init__(self):
        super().__init__("Job")


# Global registry instance (singleton)
job_registry = JobRegistry()
