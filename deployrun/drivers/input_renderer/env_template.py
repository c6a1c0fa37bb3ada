"""Renders a ballot configuration into the env file read by the deploy script."""

from __future__ import annotations

import uuid
from contextlib import suppress
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles
import aiofiles.os

from deployrun.kernel.logging import get_logger

if TYPE_CHECKING:
    from deployrun.kernel.domain.ballot_config import BallotConfig

logger = get_logger(__name__)


def _normalize(value: object) -> str:
    return "" if value is None else str(value)


def serialize_proposals(config: BallotConfig) -> tuple[str, str]:
    """Flatten proposals into the ``proposals`` and ``pledges`` template values.

    Proposal names are comma-joined. Pledge groups are ``;``-joined, one group
    per proposal with its pledges ``|``-joined.
    """
    names = [name for entry in config.proposals if (name := entry.name.strip())]
    groups = [
        "|".join(p for pledge in entry.pledges if (p := pledge.strip()))
        for entry in config.proposals
    ]
    return ",".join(names), ";".join(groups)


def apply_replacements(template: str, replacements: dict[str, str]) -> str:
    for key, value in replacements.items():
        template = template.replace(f"{{{{{key}}}}}", value)
    return template


class TempInputFile:
    """A rendered env file that deletes itself on ``cleanup``."""

    __slots__ = ("path",)

    def __init__(self, path: Path) -> None:
        self.path = path

    async def cleanup(self) -> None:
        with suppress(FileNotFoundError):
            await aiofiles.os.remove(self.path)

    def __repr__(self) -> str:
        return f"TempInputFile({str(self.path)!r})"


class EnvTemplateRenderer:
    """Fills ``{{placeholder}}`` slots of an env template for each run.

    Parameters
    ----------
    template_path : Path
        Template with ``{{ballotId}}``, ``{{proposals}}`` ... placeholders
    tmp_dir : Path
        Directory receiving ``deploy-<id>.env`` files
    """

    def __init__(self, template_path: Path, tmp_dir: Path) -> None:
        self._template_path = Path(template_path)
        self._tmp_dir = Path(tmp_dir)

    async def render_text(self, config: BallotConfig) -> str:
        async with aiofiles.open(self._template_path, encoding="utf-8") as f:
            template = await f.read()

        proposals, pledges = serialize_proposals(config)
        replacements = {
            "ballotId": _normalize(config.ballot_id),
            "title": _normalize(config.title),
            "description": _normalize(config.description),
            "opensAt": _normalize(config.schedule.opens_at),
            "closesAt": _normalize(config.schedule.closes_at),
            "announcesAt": _normalize(config.schedule.announces_at),
            "expectedVoters": _normalize(config.expected_voters),
            "proposals": proposals,
            "pledges": pledges,
            "mascotCid": _normalize(config.mascot_cid),
            "verifierAddress": _normalize(config.verifier_address),
        }
        return apply_replacements(template, replacements)

    async def render(self, config: BallotConfig) -> TempInputFile:
        content = await self.render_text(config)
        self._tmp_dir.mkdir(parents=True, exist_ok=True)
        input_file = TempInputFile(self._tmp_dir / f"deploy-{uuid.uuid4().hex}.env")
        try:
            async with aiofiles.open(input_file.path, mode="w", encoding="utf-8") as f:
                await f.write(content)
        except BaseException:
            await input_file.cleanup()
            raise
        logger.debug("Rendered deploy env {path}", path=input_file.path)
        return input_file


__all__ = ["EnvTemplateRenderer", "TempInputFile", "apply_replacements", "serialize_proposals"]
