"""
Handles the low-level streaming of CDN files to disk with adaptive chunk sizing.
"""

import asyncio
import logging
import os
from pathlib import Path

import aiofiles
import aiohttp
from rich.progress import TaskID

from cdnsync.cdn.selector import USER_AGENT
from cdnsync.cli.progress_manager import ProgressManager
from cdnsync.exceptions import TransportFailureError
from cdnsync.models.stats import SyncStats

log = logging.getLogger(__name__)


class Downloader:
    """
    A file downloader with short backoff retries and adaptive chunk sizing.

    Owns the HTTP session used for the manifest and file transfers. Use it as an
    async context manager so the session is closed.
    """

    MIN_CHUNK_SIZE = 131072  # 128 KB
    MAX_CHUNK_SIZE = 1048576  # 1 MB

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.5):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._chunk_size = self.MIN_CHUNK_SIZE
        self._session: aiohttp.ClientSession | None = None

    async def get_session(self) -> aiohttp.ClientSession:
        """Returns the shared session, creating it on first use."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=4,
                ttl_dns_cache=600,  # 10 minutes
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            # No total timeout: a stalled transfer is caught by sock_read.
            timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers={"User-Agent": USER_AGENT},
            )
            log.debug("Created download session.")
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            log.debug("Download session closed.")
        self._session = None

    async def __aenter__(self) -> "Downloader":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _adapt_chunk_size(self, current_speed_bps: float) -> int:
        """Adapts the chunk size based on current network speed."""
        if current_speed_bps > 10 * 1024 * 1024:  # > 10 MB/s
            self._chunk_size = self.MAX_CHUNK_SIZE
        elif current_speed_bps > 5 * 1024 * 1024:  # > 5 MB/s
            self._chunk_size = 524288  # 512 KB
        elif current_speed_bps > 1 * 1024 * 1024:  # > 1 MB/s
            self._chunk_size = 262144  # 256 KB
        else:
            self._chunk_size = self.MIN_CHUNK_SIZE
        return self._chunk_size

    async def _stream_to(
        self,
        url: str,
        temp_path: Path,
        stats: SyncStats | None,
        progress_manager: ProgressManager | None,
        task_id: TaskID | None,
    ) -> int:
        session = await self.get_session()
        bytes_downloaded = 0
        async with session.get(url, allow_redirects=True) as response:
            response.raise_for_status()

            async with aiofiles.open(temp_path, "wb") as f:
                loop = asyncio.get_running_loop()
                last_speed_check = loop.time()
                chunk_size = self._chunk_size

                async for chunk in response.content.iter_chunked(chunk_size):
                    await f.write(chunk)
                    bytes_downloaded += len(chunk)

                    if stats:
                        await stats.update_speed_stats(
                            stats.total_size_downloaded + bytes_downloaded
                        )
                        now = loop.time()
                        if now - last_speed_check > 2.0:
                            chunk_size = self._adapt_chunk_size(
                                stats.current_speed_bps
                            )
                            last_speed_check = now

                    if progress_manager and task_id is not None:
                        progress_manager.update_task_progress(
                            task_id, completed=bytes_downloaded
                        )
        return bytes_downloaded

    async def download_file(
        self,
        url: str,
        destination: Path,
        stats: SyncStats | None = None,
        progress_manager: ProgressManager | None = None,
        task_id: TaskID | None = None,
    ) -> int:
        """
        Streams a URL into destination, replacing any existing file once the
        transfer completes.

        Returns:
            The number of bytes written.

        Raises:
            TransportFailureError: If every attempt failed.
        """
        temp_path = destination.with_name(f"{destination.name}.part")
        last_exception: Exception | None = None
        try:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    written = await self._stream_to(
                        url, temp_path, stats, progress_manager, task_id
                    )
                    await asyncio.to_thread(os.replace, temp_path, destination)
                    return written
                except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                    last_exception = e
                    log.debug(
                        f"Download attempt {attempt}/{self.max_attempts} for "
                        f"'{destination.name}' failed: {e}"
                    )
                    if attempt < self.max_attempts:
                        await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))
        finally:
            if temp_path.exists():
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        raise TransportFailureError(
            f"Failed to download {url}: {last_exception or 'unknown error'}"
        ) from last_exception
