"""Method dispatch and the response envelope."""

from __future__ import annotations

import json
from typing import Any, Dict, List

from cpi.constants import CLOUD_ERROR
from cpi.exceptions import CPIError, NotImplementedMethodError
from cpi.models import Context, Response, ResponseError
from cpi.utils import log


def create_response(result: Any) -> str:
    return json.dumps(Response(result=result).to_dict())


def create_error_response(exc: BaseException) -> str:
    message = str(exc) or exc.__class__.__name__
    if isinstance(exc, CPIError):
        error = ResponseError(type=exc.error_type, message=message, can_retry=exc.can_retry)
    else:
        error = ResponseError(type=CLOUD_ERROR, message=message, can_retry=False)
    return json.dumps(Response(error=error).to_dict())


def dispatch(ctx: Context, actions: Dict[str, Any], method: str, args: List[Any]) -> str:
    """Run ``method`` and return the serialized response.

    Typed ``CPIError``s keep their category and retry flag; any other
    ordinary exception becomes a non-retryable ``CloudError``. Memory and
    recursion exhaustion, and non-``Exception`` errors, are left to
    terminate the process.
    """
    method = method.lower()
    fn = actions.get(method)
    if fn is None:
        log("ERROR", f"Unknown method {method}")
        return create_error_response(NotImplementedMethodError(method))

    try:
        result = fn(ctx, args)
    except (MemoryError, RecursionError):
        raise
    except CPIError as exc:
        log("ERROR", f"{method} failed ({exc.error_type}, can_retry={exc.can_retry}): {exc}")
        return create_error_response(exc)
    except Exception as exc:
        log("ERROR", f"{method} failed: {exc.__class__.__name__}: {exc}")
        return create_error_response(exc)
    return create_response(result)
