"""
Fault Injection Exceptions.

============================================================
PURPOSE
============================================================
Two exceptions matter here, and they must never be confused
with anything a real store raises:

- ChaosProductionError: chaos was switched on in production.
  Fatal. Raised at construction, never caught in this project.
- InjectedFaultException: a simulated failure. Its type is the
  ONLY signal used to tell rehearsal noise from real defects.

============================================================
"""

from typing import Optional

from .models import FaultScope


class ChaosException(Exception):
    """Base exception for fault injection."""
    pass


class ChaosProductionError(ChaosException):
    """Raised when fault injection is enabled in a production runtime."""

    def __init__(self, environment: Optional[str] = None):
        self.environment = environment or "production"
        super().__init__(
            "FATAL: CHAOS_ENABLED=true is forbidden in production. "
            f"Fault injection must NEVER run when the runtime environment is "
            f"'{self.environment}'. This is a safety violation. Aborting boot."
        )


class InjectedFaultException(ChaosException):
    """Exception raised by an injected (simulated) fault."""

    def __init__(
        self,
        fault_id: str,
        scope: FaultScope,
        operation: str,
    ):
        self.fault_id = fault_id
        self.scope = FaultScope.parse(scope)
        self.operation = operation
        super().__init__(
            f"[CHAOS:{self.scope.value}] Injected fault {fault_id} "
            f"for operation: {operation}"
        )
