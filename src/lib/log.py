"""
Centralized logging using Loguru with context-aware verbosity.

This module provides a LOG() function that respects the verbosity of the
compile currently running in this context, without passing state through
every parser, interpreter and template call.

Features:
- Context-aware logging tied to CompileState verbosity
- Rich formatting with timestamps, colors, and metadata
- Thread-safe using contextvars (concurrent renders keep their own state)

Usage:
    from gastro.lib.log import LOG, state_connectToLogger

    # At start of a compile:
    state_connectToLogger(state)

    # Anywhere in that context:
    LOG("This message appears if verbosity >= 1", level=1)
    LOG("Debug details appear if verbosity >= 2", level=2)
    LOG("Verbose trace appears if verbosity >= 3", level=3)
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar, Token
import sys

# Context variable to hold the state of the compile running in this context
_render_state: ContextVar[Optional[Any]] = ContextVar('render_state', default=None)

# Configure loguru with gastro-specific format
logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()  # Remove default handler
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> Token:
    """
    Connect a state object to the logging context.

    Call this at the start of each compile to make the state's verbosity
    setting available to LOG() calls made by the parser, interpreter,
    resolver and template engine underneath it.

    Args:
        state: Any object with a verbosity attribute (CompileState)

    Returns:
        ContextVar token; pass it to state_disconnectFromLogger() to restore
        the previous state when a nested compile finishes.
    """
    return _render_state.set(state)


def state_disconnectFromLogger(token: Token) -> None:
    """Restore the logging state that was active before state_connectToLogger()"""
    _render_state.reset(token)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)
        **kwargs: Additional loguru metadata

    Verbosity levels:
        1 = Normal output (default)
        2 = Verbose
        3 = Debug

    Example:
        LOG("Compiled pages/index.gxc", level=1)
        LOG("Resolved Card -> components/Card.gxc", level=2)
        LOG("Statement 3: var title = ...", level=3)
    """
    state = _render_state.get()

    if state and hasattr(state, 'verbosity') and state.verbosity >= level:
        logger.opt(depth=1).debug(message, **kwargs)
