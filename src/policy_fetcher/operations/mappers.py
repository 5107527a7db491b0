"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and CLI command wrappers
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import typer
from typing import Callable, TypeVar

T = TypeVar('T')

FALLBACK_EXIT_CODE = 3

# Keyed by class name; the first match along the MRO wins
EXIT_CODES = {
    "FetchFailed": 1,
    "InvalidURI": 2,
    "UnsupportedScheme": 2,
    "InvalidDestination": 2,
    "ImageReferenceInvalid": 2,
    "CredentialEncodingInvalid": 2,
    "ValueError": 2,
    "StoreIOError": 3,
    "CredentialHelperError": 4,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    Exit codes:
    - 0: Success
    - 1: Policy could not be fetched (FetchFailed)
    - 2: Invalid input (URI, scheme, destination, credentials encoding)
    - 3: Store I/O error or unknown error
    - 4: Credential helper failure

    Subclasses inherit the code of their closest mapped ancestor, so every
    CredentialHelperError subclass maps to 4.

    Args:
        exc: Exception to map

    Returns:
        Exit code (3 as fallback for unknown exceptions)
    """
    for cls in type(exc).__mro__:
        code = EXIT_CODES.get(cls.__name__)
        if code is not None:
            return code
    return FALLBACK_EXIT_CODE


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function, reports any exception on stderr and maps it
    to an exit code using typer.Exit. This centralizes error handling so
    CLI commands don't need individual try/except blocks.

    Args:
        func: Function to execute

    Returns:
        Function result if successful

    Raises:
        typer.Exit: With appropriate exit code if function raises exception
    """
    try:
        return func()
    except Exception as e:
        from .printers import print_error
        print_error(e)
        raise typer.Exit(code=exit_code_for(e)) from e
