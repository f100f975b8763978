import asyncio
import json
import logging
from typing import List, Mapping, NamedTuple, Protocol, Sequence

from pydantic import ValidationError

from redirector.config.settings import ResolverConfig
from redirector.core.errors import ResolutionFailed, ResolutionTimeout
from redirector.models.internal import MediaInfo

logger = logging.getLogger(__name__)

STDERR_EXCERPT = 200
VERSION_TIMEOUT = 10.0


class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes


class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        The child is killed if the timeout expires or the caller is cancelled.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )

            return CompletedProcess(
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr if capture_stderr else b""
            )

        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise


class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    def __init__(self, config: ResolverConfig):
        self.config = config

    def build_resolve_command(self, url: str, headers: Sequence[tuple]) -> List[str]:
        """Build command dumping the single-JSON info document for url"""
        cmd = [self.config.path, *self.config.extra_args]

        for name, value in headers:
            cmd.extend(['--add-header', f'{name}:{value}'])

        cmd.extend(['-J', url])
        return cmd

    def build_version_command(self) -> List[str]:
        return [self.config.path, *self.config.extra_args, '--version']


class Resolver(Protocol):
    """Anything that turns a canonical source URL into a MediaInfo document"""

    async def resolve(self, url: str, headers: Sequence[tuple]) -> MediaInfo:
        ...


def pass_through_headers(request_headers: Mapping[str, str], names: Sequence[str]) -> List[tuple]:
    """Ordered (name, value) pairs for the configured headers present on the request"""
    pairs = []
    for name in names:
        value = request_headers.get(name) or request_headers.get(name.lower())
        if value:
            pairs.append((name, value))
    return pairs


class YtDlpResolver:
    """Resolve source pages by running yt-dlp once per call (no caching, no retries)"""

    def __init__(self, config: ResolverConfig):
        self.config = config
        self.commands = YTDLPCommandBuilder(config)

    async def resolve(self, url: str, headers: Sequence[tuple] = ()) -> MediaInfo:
        cmd = self.commands.build_resolve_command(url, headers)
        logger.debug(f"Running resolver: {cmd}")

        try:
            result = await SubprocessExecutor.run(cmd, timeout=self.config.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise ResolutionTimeout(self.config.timeout_seconds) from e
        except OSError as e:
            raise ResolutionFailed(f"Cannot run {self.config.path}: {e}", cause=e) from e

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="ignore").strip()
            raise ResolutionFailed(
                f"Resolver exited with {result.returncode}: {error_msg[:STDERR_EXCERPT]}"
            )

        try:
            return MediaInfo.model_validate(json.loads(result.stdout))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            raise ResolutionFailed("Failed to parse resolver output", cause=e) from e

    async def version(self) -> str:
        """Resolver version string, or "unknown" when it cannot be run"""
        try:
            result = await SubprocessExecutor.run(
                self.commands.build_version_command(),
                timeout=VERSION_TIMEOUT
            )
        except (asyncio.TimeoutError, OSError) as e:
            logger.warning(f"Cannot query {self.config.path} version: {e}")
            return "unknown"

        if result.returncode != 0:
            return "unknown"
        return result.stdout.decode(errors="ignore").strip() or "unknown"
