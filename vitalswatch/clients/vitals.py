import asyncio
import aiohttp
from pydantic import ValidationError

from vitalswatch.core.exceptions import (
    BodyReadError,
    DecodeError,
    IncompatibleVersionError,
    NetworkError,
    UnexpectedTitleError
)
from vitalswatch.core.models import MetricPoint, ServerTarget, VitalsDocument
from vitalswatch.utils.logger import LoggerSetup


class VitalsClient:
    """
    Async client for vitals-glimpse endpoints.

    One GET per fetch, no retries: a failed attempt is a failed poll for
    that cycle. The HTTP status is deliberately not checked; whatever body
    comes back is decoded and validated.
    """

    def __init__(self, request_timeout: float = 30.0):
        self._request_timeout = request_timeout
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()
        self.logger = LoggerSetup.setup(__class__.__name__)


    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self._session is None:
            async with self._session_lock:
                if self._session is None:
                    self._session = await self._create_session()
        return self._session

    async def _create_session(self) -> aiohttp.ClientSession:
        """Create new session with a total per-request timeout"""
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._request_timeout),
            headers={'Accept': 'application/json'}
        )


    async def fetch(self, target: ServerTarget) -> MetricPoint:
        """
        Poll one target and turn its vitals into a point.

        Args:
            target: Server to poll

        Returns:
            MetricPoint: Point tagged with the target name, stamped now

        Raises:
            NetworkError: Request failed or no response arrived
            BodyReadError: Response body could not be read
            DecodeError: Body is not a valid vitals document
            IncompatibleVersionError: Document version below 0.2
            UnexpectedTitleError: Document title is not vitals-glimpse
        """
        session = await self._get_session()

        try:
            response = await session.get(target.url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise NetworkError(target, str(e) or e.__class__.__name__) from e

        async with response:
            try:
                body = await response.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise BodyReadError(target, str(e) or e.__class__.__name__) from e

        self.logger.debug(f"Received {len(body)} bytes from {target.name} (HTTP {response.status})")

        vitals = self.parse(target, body)
        return MetricPoint.from_vitals(target, vitals)

    def parse(self, target: ServerTarget, body: bytes) -> VitalsDocument:
        """Decode and validate a response body"""
        try:
            vitals = VitalsDocument.model_validate_json(body)
        except ValidationError as e:
            raise DecodeError(target, f"invalid vitals document: {e.error_count()} error(s), first: {e.errors()[0]['msg']}") from e

        # Version is checked before title
        if not vitals.is_supported_version():
            raise IncompatibleVersionError(target, vitals.version)

        if not vitals.has_expected_title():
            raise UnexpectedTitleError(target, vitals.title)

        return vitals


    async def cleanup(self) -> None:
        """Cleanup resources"""
        if self._session:
            async with self._session_lock:
                await self._session.close()
                self._session = None
