"""Tests for metadata_reader.py."""

import json
from pathlib import Path

import pytest

from error_handling import PipelineIOError
from metadata_reader import EpisodeMetadata, format_index, get_season_metadata
from tests.conftest import make_episode, make_season


class TestFormatIndex:
    """Tests for format_index zero padding."""

    def test_single_digit_padded(self):
        assert format_index("3") == "03"

    def test_two_digits_unchanged(self):
        assert format_index("12") == "12"

    def test_three_digits_keep_width(self):
        """Known limitation: width stays 2, so '100' sorts before '11'."""
        assert format_index("100") == "100"
        assert format_index("100") < format_index("11")


class TestGetSeasonMetadata:
    """Tests for get_season_metadata."""

    def test_reads_title_type_tag_and_episodes(self, tmp_path: Path):
        season_dir = make_season(tmp_path, "Season A", "1080p", [("1", "Pilot"), ("2", "Second")])

        season = get_season_metadata(season_dir)

        assert season.title == "Season A"
        assert season.type_tag == "1080p"
        by_index = {e.index: e for e in season.episodes}
        assert set(by_index) == {"1", "2"}
        assert by_index["1"] == EpisodeMetadata(title="Pilot", index="1", path=season_dir / "ep1")

    def test_ignores_plain_files(self, tmp_path: Path):
        season_dir = make_season(tmp_path, episodes=[("1", "Pilot")])
        (season_dir / "notes.txt").write_text("x")

        season = get_season_metadata(season_dir)
        assert len(season.episodes) == 1

    def test_page_data_fallback(self, tmp_path: Path):
        """UGC downloads carry page_data instead of ep."""
        ep_dir = tmp_path / "video" / "c_1"
        ep_dir.mkdir(parents=True)
        (ep_dir / "entry.json").write_text(
            json.dumps({"title": "Vlog", "type_tag": "64", "page_data": {"page": 3, "part": "Day 3"}})
        )

        season = get_season_metadata(tmp_path / "video")
        assert season.title == "Vlog"
        assert season.type_tag == "64"
        assert season.episodes[0].index == "3"
        assert season.episodes[0].title == "Day 3"

    def test_missing_episode_title_falls_back(self, tmp_path: Path):
        make_episode(tmp_path / "s", "ep7", "7", "")
        season = get_season_metadata(tmp_path / "s")
        assert season.episodes[0].title == "Episode 7"

    def test_missing_directory_raises(self, tmp_path: Path):
        with pytest.raises(PipelineIOError, match="missing"):
            get_season_metadata(tmp_path / "missing")

    def test_missing_entry_json_raises_with_season_path(self, tmp_path: Path):
        season_dir = make_season(tmp_path, episodes=[("1", "Pilot")])
        (season_dir / "broken").mkdir()

        with pytest.raises(PipelineIOError) as exc:
            get_season_metadata(season_dir)
        assert str(season_dir) in str(exc.value)

    def test_malformed_entry_json_raises(self, tmp_path: Path):
        ep_dir = tmp_path / "s" / "ep1"
        ep_dir.mkdir(parents=True)
        (ep_dir / "entry.json").write_text("{not json")

        with pytest.raises(PipelineIOError):
            get_season_metadata(tmp_path / "s")

    def test_entry_without_index_raises(self, tmp_path: Path):
        ep_dir = tmp_path / "s" / "ep1"
        ep_dir.mkdir(parents=True)
        (ep_dir / "entry.json").write_text(json.dumps({"title": "A", "type_tag": "64"}))

        with pytest.raises(PipelineIOError):
            get_season_metadata(tmp_path / "s")

    def test_empty_season_raises(self, tmp_path: Path):
        (tmp_path / "empty").mkdir()
        with pytest.raises(PipelineIOError, match="no episodes"):
            get_season_metadata(tmp_path / "empty")

    def test_records_are_frozen(self, tmp_path: Path):
        season = get_season_metadata(make_season(tmp_path, episodes=[("1", "Pilot")]))
        with pytest.raises(AttributeError):
            season.episodes[0].index = "2"  # type: ignore[misc]
