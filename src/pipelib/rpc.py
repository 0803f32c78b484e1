"""Request/response dispatch for library operations.

Each request names an operation and carries a JSON-style payload. The reply is
either ``{"result": ...}`` or ``{"fault": {"code": ..., "message": ...}}``;
exceptions never escape :func:`dispatch`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from pipelib.errors import LibraryError, RootNotFoundError, SearchTermError
from pipelib.ingestion.errors import ParseError
from pipelib.library import LibraryService
from pipelib.mirror import MirrorError, PipefileRecord

LOGGER = logging.getLogger(__name__)

Handler = Callable[[LibraryService, Mapping[str, Any]], Any]


class RequestError(LibraryError):
    """Raised when a request payload is missing fields or has the wrong shape."""


def _records_payload(records: Mapping[str, PipefileRecord]) -> dict[str, Any]:
    return {path: record.model_dump(mode="json") for path, record in records.items()}


def _require_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise RequestError(f"'{key}' must be a non-empty string.")
    return value


def _require_paths(payload: Mapping[str, Any]) -> list[str]:
    value = payload.get("paths")
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise RequestError("'paths' must be a list of strings.")
    return list(value)


def _list_files(service: LibraryService, payload: Mapping[str, Any]) -> Any:
    return _records_payload(service.list_files(_require_str(payload, "root")))


def _search(service: LibraryService, payload: Mapping[str, Any]) -> Any:
    term = payload.get("term")
    if not isinstance(term, str):
        raise RequestError("'term' must be a string.")
    return _records_payload(service.search(_require_str(payload, "root"), term))


def _remove_files(service: LibraryService, payload: Mapping[str, Any]) -> Any:
    outcomes = service.remove_files(_require_paths(payload))
    return [outcome.model_dump(mode="json") for outcome in outcomes]


def _move_files(service: LibraryService, payload: Mapping[str, Any]) -> Any:
    outcomes = service.move_files(_require_paths(payload), _require_str(payload, "destination"))
    return [outcome.model_dump(mode="json") for outcome in outcomes]


def _copy_files(service: LibraryService, payload: Mapping[str, Any]) -> Any:
    outcomes = service.copy_files(_require_paths(payload), _require_str(payload, "destination"))
    return [outcome.model_dump(mode="json") for outcome in outcomes]


OPERATIONS: dict[str, Handler] = {
    "listFiles": _list_files,
    "search": _search,
    "removeFiles": _remove_files,
    "moveFiles": _move_files,
    "copyFiles": _copy_files,
}


def _fault(code: str, message: str) -> dict[str, Any]:
    return {"fault": {"code": code, "message": message}}


def dispatch(
    service: LibraryService,
    operation: str,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Run ``operation`` against ``service`` and wrap the result or fault.

    Args:
        service: Library service handling the request.
        operation: One of the names in :data:`OPERATIONS`.
        payload: Operation arguments.

    Returns:
        dict[str, Any]: ``{"result": ...}`` on success, ``{"fault": ...}`` otherwise.
    """
    handler = OPERATIONS.get(operation)
    if handler is None:
        return _fault("unknown_operation", f"Unknown operation: {operation}")
    if payload is not None and not isinstance(payload, Mapping):
        return _fault("invalid_request", "Payload must be a mapping.")

    try:
        return {"result": handler(service, payload or {})}
    except RootNotFoundError as exc:
        return _fault("not_found", str(exc))
    except (SearchTermError, RequestError) as exc:
        return _fault("invalid_request", str(exc))
    except MirrorError as exc:
        LOGGER.error("Persistence failure during %s: %s", operation, exc)
        return _fault("persistence_error", str(exc))
    except ParseError as exc:
        return _fault("parse_error", str(exc))
    except Exception as exc:
        LOGGER.exception("Unexpected failure during %s", operation)
        return _fault("internal_error", f"{type(exc).__name__}: {exc}")


__all__ = ["OPERATIONS", "RequestError", "dispatch"]
