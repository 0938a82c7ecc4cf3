import asyncio
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Dict, Optional, Tuple, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from .errors import AbortError, APICallError, TypeValidationError
from .responses import GoogleErrorData

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")


@dataclass
class ParseResult:
    """
    Outcome of parsing one server-sent event.

    Exactly one of ``value`` (on success) or ``error`` is set.
    """
    success: bool
    value: Any = None
    error: Optional[Exception] = None
    raw_value: Any = None


async def post_json_to_api(
    *,
    url: str,
    headers: Dict[str, str],
    body: Any,
    response_model: Type[ModelT],
    http_client: Optional[httpx.AsyncClient] = None,
    abort_signal: Optional[asyncio.Event] = None,
) -> Tuple[Dict[str, str], ModelT, Any]:
    """
    POST a JSON body and validate the JSON response.

    Args:
        url (str): Endpoint URL.
        headers (Dict[str, str]): Request headers, including the API key.
        body (Any): JSON-serializable request body.
        response_model (Type[BaseModel]): Pydantic model the response must match.
        http_client (httpx.AsyncClient, optional): Client to send with. A
            short-lived client is created when omitted.
        abort_signal (asyncio.Event, optional): Aborts the call when set.

    Returns:
        Tuple: (response headers, validated response, raw decoded JSON).

    Raises:
        APICallError: On transport failures, non-2xx responses or vendor error bodies.
        TypeValidationError: If the response body does not match ``response_model``.
        AbortError: If ``abort_signal`` is set before the response arrives.
    """
    logger.debug("api_request", url=url, stream=False)

    if http_client is None:
        async with httpx.AsyncClient() as owned_client:
            response = await _send(owned_client, url, headers, body, abort_signal, stream=False)
    else:
        response = await _send(http_client, url, headers, body, abort_signal, stream=False)

    response_headers = dict(response.headers)
    if not response.is_success:
        raise _api_call_error(url, body, response, response.text)

    try:
        raw_value = json.loads(response.text)
        value = response_model.model_validate(raw_value)
    except json.JSONDecodeError as e:
        raise TypeValidationError(response.text, e) from e
    except ValidationError as e:
        raise TypeValidationError(raw_value, e) from e

    return response_headers, value, raw_value


async def post_to_event_stream(
    *,
    url: str,
    headers: Dict[str, str],
    body: Any,
    chunk_model: Type[BaseModel],
    http_client: Optional[httpx.AsyncClient] = None,
    abort_signal: Optional[asyncio.Event] = None,
) -> Tuple[Dict[str, str], "EventStream"]:
    """
    POST a JSON body and open the server-sent-event response.

    The status code is checked before returning, so API errors are raised
    here rather than from the iterator. Each event's ``data`` is parsed into
    ``chunk_model``; failures are yielded as unsuccessful ``ParseResult``s.

    Returns:
        Tuple: (response headers, ``EventStream`` of ``ParseResult``).
    """
    logger.debug("api_request", url=url, stream=True)

    owned_client = None
    if http_client is None:
        owned_client = http_client = httpx.AsyncClient()

    try:
        response = await _send(http_client, url, headers, body, abort_signal, stream=True)
        if not response.is_success:
            try:
                await response.aread()
                raise _api_call_error(url, body, response, response.text)
            finally:
                await response.aclose()
    except BaseException:
        if owned_client is not None:
            await owned_client.aclose()
        raise

    return dict(response.headers), EventStream(response, chunk_model, abort_signal, owned_client)


class EventStream:
    """
    Parsed server-sent events read from an open response.

    Each read races the abort signal, so a stalled connection stops as soon
    as the signal is set. The response (and a client opened for it) is
    released when iteration ends or ``aclose`` is called, whichever is first.
    """

    def __init__(
        self,
        response: httpx.Response,
        chunk_model: Type[BaseModel],
        abort_signal: Optional[asyncio.Event] = None,
        owned_client: Optional[httpx.AsyncClient] = None,
    ):
        self._response = response
        self._chunk_model = chunk_model
        self._abort_signal = abort_signal
        self._owned_client = owned_client
        self._released = False
        self._events = self._iter_events()

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> ParseResult:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        await self._events.aclose()
        await self._release()

    async def _iter_events(self) -> AsyncIterator[ParseResult]:
        data_iter = _iter_sse_data(self._response.aiter_lines())
        try:
            while True:
                try:
                    data = await run_abortable(_next_or_none(data_iter), self._abort_signal)
                except AbortError:
                    logger.debug("stream_read_aborted", url=str(self._response.url))
                    return
                if data is None:
                    return
                yield _parse_chunk(data, self._chunk_model)
        finally:
            await data_iter.aclose()
            await self._release()

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._response.aclose()
        if self._owned_client is not None:
            await self._owned_client.aclose()


async def _next_or_none(iterator: AsyncIterator[T]) -> Optional[T]:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return None


def to_json_body(value: Any) -> str:
    """
    Serialize a request body, omitting dict entries whose value is None.
    """
    return json.dumps(_drop_none(value))


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    return value


async def _send(
    client: httpx.AsyncClient,
    url: str,
    headers: Dict[str, str],
    body: Any,
    abort_signal: Optional[asyncio.Event],
    *,
    stream: bool,
) -> httpx.Response:
    request = client.build_request(
        "POST",
        url,
        headers={**headers, "content-type": "application/json"},
        content=to_json_body(body),
    )
    try:
        return await run_abortable(client.send(request, stream=stream), abort_signal)
    except httpx.HTTPError as e:
        raise APICallError(
            f"Cannot connect to API: {e}",
            url=url,
            request_body_values=body,
            cause=e,
        ) from e


async def run_abortable(awaitable: Awaitable[T], abort_signal: Optional[asyncio.Event]) -> T:
    """
    Await ``awaitable`` unless ``abort_signal`` is set first.

    Raises:
        AbortError: If the signal is set before the awaitable finishes. The
            awaitable is cancelled.
    """
    if abort_signal is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    if abort_signal.is_set():
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise AbortError()

    waiter = asyncio.ensure_future(abort_signal.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    raise AbortError()


def _api_call_error(url: str, body: Any, response: httpx.Response, text: str) -> APICallError:
    common = dict(
        url=url,
        request_body_values=body,
        status_code=response.status_code,
        response_headers=dict(response.headers),
        response_body=text,
    )
    try:
        data = GoogleErrorData.model_validate_json(text)
    except ValidationError:
        return APICallError(response.reason_phrase or f"HTTP {response.status_code}", **common)

    return APICallError(
        data.error.message,
        vendor_code=data.error.code,
        vendor_status=data.error.status,
        **common,
    )


async def _iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    # Minimal text/event-stream decoder: only the data field matters here.
    data_lines = []
    async for line in lines:
        if line == "":
            if data_lines:
                yield "\n".join(data_lines)
                data_lines = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            data_lines.append(value)
    if data_lines:
        yield "\n".join(data_lines)


def _parse_chunk(data: str, chunk_model: Type[BaseModel]) -> ParseResult:
    try:
        raw_value = json.loads(data)
    except json.JSONDecodeError as e:
        return ParseResult(success=False, error=TypeValidationError(data, e), raw_value=data)

    try:
        return ParseResult(success=True, value=chunk_model.model_validate(raw_value), raw_value=raw_value)
    except ValidationError as e:
        return ParseResult(success=False, error=TypeValidationError(raw_value, e), raw_value=raw_value)
