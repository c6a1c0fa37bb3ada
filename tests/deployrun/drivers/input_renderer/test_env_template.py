"""Tests for EnvTemplateRenderer."""

from pathlib import Path
from typing import Any

import pytest

from deployrun.drivers.input_renderer.env_template import (
    EnvTemplateRenderer,
    TempInputFile,
    apply_replacements,
    serialize_proposals,
)
from deployrun.kernel.domain.ballot_config import BallotConfig
from deployrun.kernel.ports.input_renderer import InputFile, InputRenderer


def _renderer(project_root: Path) -> EnvTemplateRenderer:
    contracts = project_root / "blockchain_contracts"
    return EnvTemplateRenderer(contracts / "deploy.templates.env", contracts / "tmp")


class TestSerializeProposals:
    def test_joins_names_and_pledge_groups(self, ballot_config: BallotConfig) -> None:
        proposals, pledges = serialize_proposals(ballot_config)
        assert proposals == "Alice,Bob"
        assert pledges == "Longer lunch|More clubs;Free printing"

    def test_trims_whitespace(self, ballot_payload: dict[str, Any]) -> None:
        ballot_payload["proposals"] = [{"name": "  Carol ", "pledges": [" a ", "b  "]}]
        proposals, pledges = serialize_proposals(BallotConfig.model_validate(ballot_payload))
        assert proposals == "Carol"
        assert pledges == "a|b"


class TestApplyReplacements:
    def test_replaces_every_occurrence(self) -> None:
        assert apply_replacements("{{a}}-{{a}}-{{b}}", {"a": "1", "b": "2"}) == "1-1-2"

    def test_unknown_placeholders_survive(self) -> None:
        assert apply_replacements("{{other}}", {"a": "1"}) == "{{other}}"


class TestEnvTemplateRenderer:
    def test_satisfies_port(self, project_root: Path) -> None:
        assert isinstance(_renderer(project_root), InputRenderer)

    @pytest.mark.asyncio()
    async def test_render_text(self, project_root: Path, ballot_config: BallotConfig) -> None:
        text = await _renderer(project_root).render_text(ballot_config)
        assert "BALLOT_ID=ballot-2024\n" in text
        assert "EXPECTED_VOTERS=120\n" in text
        assert "PROPOSALS=Alice,Bob\n" in text
        assert "PLEDGES=Longer lunch|More clubs;Free printing\n" in text
        assert "MASCOT_CID=bafy-mascot\n" in text
        assert "{{" not in text

    @pytest.mark.asyncio()
    async def test_missing_optional_renders_empty(
        self, project_root: Path, ballot_payload: dict[str, Any]
    ) -> None:
        del ballot_payload["mascotCid"]
        config = BallotConfig.model_validate(ballot_payload)
        text = await _renderer(project_root).render_text(config)
        assert "MASCOT_CID=\n" in text

    @pytest.mark.asyncio()
    async def test_render_writes_unique_temp_files(
        self, project_root: Path, ballot_config: BallotConfig
    ) -> None:
        renderer = _renderer(project_root)
        first = await renderer.render(ballot_config)
        second = await renderer.render(ballot_config)

        assert isinstance(first, InputFile)
        assert first.path != second.path
        assert first.path.parent == project_root / "blockchain_contracts" / "tmp"
        assert first.path.name.startswith("deploy-")
        assert first.path.suffix == ".env"
        assert "BALLOT_ID=ballot-2024" in first.path.read_text(encoding="utf-8")

    @pytest.mark.asyncio()
    async def test_missing_template_raises(
        self, tmp_path: Path, ballot_config: BallotConfig
    ) -> None:
        renderer = EnvTemplateRenderer(tmp_path / "missing.env", tmp_path / "tmp")
        with pytest.raises(FileNotFoundError):
            await renderer.render(ballot_config)

    @pytest.mark.asyncio()
    async def test_failed_write_leaves_no_partial_file(
        self, project_root: Path, ballot_config: BallotConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        renderer = _renderer(project_root)

        async def unencodable(config: BallotConfig) -> str:
            return "TITLE=\ud800\n"

        monkeypatch.setattr(renderer, "render_text", unencodable)
        with pytest.raises(UnicodeEncodeError):
            await renderer.render(ballot_config)

        tmp_dir = project_root / "blockchain_contracts" / "tmp"
        assert list(tmp_dir.glob("deploy-*.env")) == []


class TestTempInputFile:
    @pytest.mark.asyncio()
    async def test_cleanup_removes_file(self, tmp_path: Path) -> None:
        path = tmp_path / "deploy-x.env"
        path.write_text("A=1\n", encoding="utf-8")
        await TempInputFile(path).cleanup()
        assert not path.exists()

    @pytest.mark.asyncio()
    async def test_cleanup_of_missing_file_is_silent(self, tmp_path: Path) -> None:
        await TempInputFile(tmp_path / "gone.env").cleanup()
