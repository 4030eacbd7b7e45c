"""
FetchClient - низкоуровневый HTTP клиент (aiohttp)

Ответственность:
- GET/POST запросы к API платформ с лимитом размера ответа
- Потоковое скачивание (тело не буферизуется)
- Разрешение коротких ссылок (редиректы)

НЕ знает о платформах, стратегиях и файлах.
"""
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp

from src.config import Settings
from src.downloader.errors import (
    FetchError,
    FetchHttpStatusError,
    FetchNetworkError,
    FetchTimeoutError,
    FetchTooLargeError,
)
from src.utils.utils import shorten

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class FetchRequest:
    """
    Параметры одного HTTP запроса

    timeout, max_redirects и max_size = None означают значения из Settings.
    max_size = 0 отключает лимит.
    """
    url: str
    method: str = 'GET'
    params: Optional[Dict[str, str]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None
    json: Any = None
    timeout: Optional[float] = None
    max_redirects: Optional[int] = None
    max_size: Optional[int] = None
    require_success: bool = True


@dataclass
class FetchResponse:
    """Буферизованный ответ"""
    status: int
    url: str
    headers: Dict[str, str]
    body: bytes

    def text(self, encoding: str = 'utf-8') -> str:
        return self.body.decode(encoding, errors='replace')

    def json(self) -> Any:
        """Разобрать тело как JSON (ValueError если это не JSON)"""
        return json.loads(self.body)


class StreamResponse:
    """Ответ, тело которого читается по частям"""

    def __init__(self, response: aiohttp.ClientResponse, max_size: int):
        self._response = response
        self.max_size = max_size
        self.status = response.status
        self.url = str(response.url)
        self.headers = dict(response.headers)
        self.content_length = response.content_length

    async def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        """
        Читать тело по частям

        Raises:
            FetchTooLargeError: Если получено больше max_size байт
            FetchTimeoutError / FetchNetworkError: Обрыв или зависание передачи
        """
        received = 0
        try:
            async for chunk in self._response.content.iter_chunked(chunk_size):
                received += len(chunk)
                if self.max_size and received > self.max_size:
                    raise FetchTooLargeError(self.max_size, received)
                yield chunk
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(f"Таймаут при чтении ответа ({received} байт получено)") from e
        except aiohttp.ClientError as e:
            raise FetchNetworkError(f"Обрыв передачи: {e}") from e


class FetchClient:
    """
    HTTP клиент с одним общим aiohttp.ClientSession

    Сессия создается лениво при первом запросе. Вызовите close() при остановке приложения.
    """

    def __init__(self, settings: Settings, session: Optional[aiohttp.ClientSession] = None):
        self.settings = settings
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(
                    limit=20,
                    keepalive_timeout=30,
                    enable_cleanup_closed=True,
                ),
            )
            logger.debug("[fetch] HTTP сессия создана")
        return self._session

    async def close(self):
        """Закрыть HTTP сессию"""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("[fetch] HTTP сессия закрыта")
        self._session = None

    def _build_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        result = {
            'User-Agent': self.settings.user_agent,
            'Accept': '*/*',
        }
        result.update(headers or {})
        return result

    def _limits(self, request: FetchRequest, default_size: int) -> tuple:
        timeout = request.timeout if request.timeout is not None else self.settings.request_timeout
        max_redirects = (
            request.max_redirects if request.max_redirects is not None else self.settings.max_redirects
        )
        max_size = request.max_size if request.max_size is not None else default_size
        return timeout, max_redirects, max_size

    async def _open(
        self,
        request: FetchRequest,
        timeout: aiohttp.ClientTimeout,
        max_redirects: int,
    ) -> aiohttp.ClientResponse:
        """Отправить запрос и получить ответ без чтения тела"""
        session = self._get_session()
        try:
            response = await session.request(
                request.method,
                request.url,
                params=request.params,
                headers=self._build_headers(request.headers),
                data=request.data,
                json=request.json,
                allow_redirects=True,
                max_redirects=max_redirects,
                timeout=timeout,
            )
        except aiohttp.TooManyRedirects as e:
            raise FetchNetworkError(f"Слишком много редиректов (> {max_redirects})") from e
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(f"Таймаут запроса {request.method} {shorten(request.url)}") from e
        except aiohttp.ClientError as e:
            raise FetchNetworkError(f"Ошибка соединения: {e}") from e

        logger.debug(f"[fetch] {request.method} {shorten(request.url)} -> {response.status}")

        if request.require_success and response.status >= 400:
            response.release()
            raise FetchHttpStatusError(response.status, request.url)
        return response

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        """
        Выполнить запрос и прочитать тело целиком (для API и HTML страниц)

        Raises:
            FetchError: Любая сетевая ошибка, таймаут, превышение размера или HTTP статус
        """
        timeout, max_redirects, max_size = self._limits(request, self.settings.max_response_size)
        response = await self._open(request, aiohttp.ClientTimeout(total=timeout), max_redirects)

        try:
            if max_size and response.content_length and response.content_length > max_size:
                raise FetchTooLargeError(max_size, response.content_length)

            stream = StreamResponse(response, max_size)
            chunks = []
            async for chunk in stream.iter_chunks():
                chunks.append(chunk)

            return FetchResponse(
                status=response.status,
                url=str(response.url),
                headers=dict(response.headers),
                body=b''.join(chunks),
            )
        finally:
            response.release()

    @asynccontextmanager
    async def stream(self, request: FetchRequest) -> AsyncIterator[StreamResponse]:
        """
        Открыть потоковый ответ

        timeout здесь - таймаут соединения и паузы между пакетами, а не общее время передачи
        (общий лимит на скачивание держит MediaFetcher).

        Usage:
            async with client.stream(FetchRequest(url)) as response:
                async for chunk in response.iter_chunks():
                    ...
        """
        timeout, max_redirects, max_size = self._limits(request, self.settings.media_max_size)
        client_timeout = aiohttp.ClientTimeout(total=None, connect=timeout, sock_read=timeout)
        response = await self._open(request, client_timeout, max_redirects)

        try:
            if max_size and response.content_length and response.content_length > max_size:
                raise FetchTooLargeError(max_size, response.content_length)
            yield StreamResponse(response, max_size)
        finally:
            response.release()

    async def resolve_redirect(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        """
        Разрешить короткую ссылку в конечный URL (тело ответа не читается)

        Raises:
            FetchError: Если запрос не удался
        """
        request = FetchRequest(url=url, headers=headers or {}, max_size=0, require_success=False)
        async with self.stream(request) as response:
            final_url = response.url
        if final_url != url:
            logger.info(f"[fetch] Короткая ссылка {shorten(url)} -> {shorten(final_url)}")
        return final_url


__all__ = [
    'FetchClient',
    'FetchRequest',
    'FetchResponse',
    'StreamResponse',
    'FetchError',
]
