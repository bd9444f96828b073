# buildrules/core/logging/context.py
from __future__ import annotations
import contextvars

# All log context lives here. The planner adds moduleName on top of the caller's context while a module is resolved.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("buildrules.logctx", default=None)

def setLogContext(**kvs) -> contextvars.Token:
    """
    Set or update per-log context values (moduleName, target, etc.).

    Returns a token for resetLogContext() to put back the previous context.
    """
    current = dict(_logContextVar.get() or {}) # use copy
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    return _logContextVar.set(current)

def resetLogContext(token: contextvars.Token) -> None:
    """Restore the context that was active before the matching setLogContext()."""
    _logContextVar.reset(token)

def clearLogContext():
    """Drop the whole context."""
    _logContextVar.set(None)

def getLogContext():
    """Return current context dict or None."""
    return _logContextVar.get()
