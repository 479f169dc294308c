"""Bootstrap - builds and wires the runtime components

Responsibilities:
- create Timer, SessionRegistry, LocalFileStore, TokenAuthorizer, WorkspaceManager
- register the orphan sweep as an interval task
- return RuntimeComponents to the caller

Not responsible for:
- starting the timer or the web server (the caller owns the lifecycle)
"""

from dataclasses import dataclass

from .. import config
from ..auth import TokenAuthorizer
from ..files import LocalFileStore
from ..layout.manager import WorkspaceManager
from ..pty.process import ProcessFactory
from ..pty.registry import SessionRegistry
from ..telemetry import get_logger
from ..timer import Timer

logger = get_logger(__name__)


@dataclass
class RuntimeComponents:
    """Components returned by bootstrap()"""

    timer: Timer
    registry: SessionRegistry
    manager: WorkspaceManager
    file_store: LocalFileStore
    authorizer: TokenAuthorizer

    def shutdown(self) -> None:
        """Stop the timer and kill every session."""
        self.timer.stop()
        self.registry.shutdown()
        logger.info("[Bootstrap] Runtime shut down")


def bootstrap(
    project_root: str | None = None,
    process_factory: ProcessFactory | None = None,
    authorizer: TokenAuthorizer | None = None,
    sweep_interval: float | None = None,
) -> RuntimeComponents:
    """Construct the runtime components

    Args:
        project_root: default session cwd and file root (config.PROJECT_ROOT)
        process_factory: override for spawning pty processes (tests)
        authorizer: override for the token authorizer
        sweep_interval: seconds between orphan sweeps

    Returns:
        RuntimeComponents with everything wired
    """
    root = project_root or config.PROJECT_ROOT

    # 1. Timer
    timer = Timer()

    # 2. Registry + orphan sweep
    registry = SessionRegistry(default_cwd=root, process_factory=process_factory)
    timer.register_interval(
        "session_sweep",
        sweep_interval or config.SWEEP_INTERVAL_SECONDS,
        registry.sweep,
    )

    # 3. Collaborators
    file_store = LocalFileStore(root)
    authorizer = authorizer or TokenAuthorizer()

    # 4. Application state
    manager = WorkspaceManager(registry, file_store)

    logger.info(f"[Bootstrap] Components created (root={root})")
    return RuntimeComponents(
        timer=timer,
        registry=registry,
        manager=manager,
        file_store=file_store,
        authorizer=authorizer,
    )
