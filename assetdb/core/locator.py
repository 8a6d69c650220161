"""Repository locator — finds which repository hosts a package.

Every repository is probed concurrently at
``{repository}/{package_id}.{archive_ext}``.  How the answers are combined is
a ``RaceStrategy``:

``fastest`` (default)
    The first probe to answer "exists" wins.  Repository order is ignored.
``priority``
    A positive answer from repository *i* is accepted only once every
    repository listed before *i* has answered negatively, so the
    highest-priority host wins even when a lower-priority one is faster.

Outstanding probes are cancelled as soon as the outcome is decided.  A probe
that fails at the transport level counts as "not hosted here".
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Protocol

from assetdb.core.errors import PackageNotFoundError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_EXT = "zip"


class RaceStrategy(str, Enum):
    """How concurrent probe answers pick the winning repository."""

    FASTEST = "fastest"
    PRIORITY = "priority"


class Prober(Protocol):
    async def probe(self, url: str) -> bool: ...


def archive_url(repository: str, package_id: str, archive_ext: str = DEFAULT_ARCHIVE_EXT) -> str:
    """Return the archive location of *package_id* within *repository*."""
    return f"{repository.rstrip('/')}/{package_id}.{archive_ext}"


class RepositoryLocator:
    """Races existence probes across repositories.

    Parameters
    ----------
    transport:
        Anything with an ``async probe(url) -> bool`` method.
    archive_ext:
        Archive file extension appended to the package id.
    strategy:
        ``RaceStrategy.FASTEST`` or ``RaceStrategy.PRIORITY``.
    """

    def __init__(
        self,
        transport: Prober,
        *,
        archive_ext: str = DEFAULT_ARCHIVE_EXT,
        strategy: RaceStrategy = RaceStrategy.FASTEST,
    ) -> None:
        self._transport = transport
        self._archive_ext = archive_ext
        self._strategy = RaceStrategy(strategy)

    @property
    def strategy(self) -> RaceStrategy:
        return self._strategy

    async def locate(self, package_id: str, repositories: list[str]) -> str:
        """Return the archive URL of *package_id* in a repository that hosts it.

        Raises
        ------
        PackageNotFoundError
            If the list is empty or every probe answers negatively.
        """
        if not repositories:
            raise PackageNotFoundError(package_id, "no repositories configured")

        urls = [archive_url(repo, package_id, self._archive_ext) for repo in repositories]
        tasks = [asyncio.ensure_future(self._probe(url)) for url in urls]
        index_of = {task: i for i, task in enumerate(tasks)}
        answers: list[bool | None] = [None] * len(tasks)
        pending = set(tasks)

        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    answers[index_of[task]] = task.result()

                winner = self._decide(answers)
                if winner is not None:
                    logger.info(
                        "Located package %s at %s (%s).",
                        package_id,
                        urls[winner],
                        self._strategy.value,
                    )
                    return urls[winner]
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        raise PackageNotFoundError(package_id)

    def _decide(self, answers: list[bool | None]) -> int | None:
        """Return the index of the winning repository, if decided yet."""
        if self._strategy is RaceStrategy.FASTEST:
            for i, answer in enumerate(answers):
                if answer:
                    return i
            return None

        for i, answer in enumerate(answers):
            if answer is None:
                return None  # a higher-priority repository is still pending
            if answer:
                return i
        return None

    async def _probe(self, url: str) -> bool:
        try:
            return await self._transport.probe(url)
        except TransportError as exc:
            logger.debug("Probe failed for %s: %s", url, exc)
            return False
