"""Tests for pipeline_utils.py I/O, validation and embedding step helpers."""

import json

import pandas as pd
import pytest

from embed import embed_comments
from pipeline_config import as_boolean
from pipeline_utils import (
    StepTracker,
    ValidationError,
    load_comments,
    load_env_file,
    save_json,
    save_table,
    setup_logging,
    validate_fields,
)


class TestLoadComments:
    def test_reads_comment_list(self, logger, tmp_path) -> None:
        path = tmp_path / "comments.json"
        path.write_text(json.dumps({'comments': [{'id': 'a', 'text': 'x'}]}))
        assert load_comments(str(path), logger) == [{'id': 'a', 'text': 'x'}]

    def test_missing_file(self, logger, tmp_path) -> None:
        with pytest.raises(ValidationError, match="not found"):
            load_comments(str(tmp_path / "nope.json"), logger)

    def test_invalid_json(self, logger, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{")
        with pytest.raises(ValidationError, match="Cannot parse"):
            load_comments(str(path), logger)

    def test_no_comment_list(self, logger, tmp_path) -> None:
        path = tmp_path / "other.json"
        path.write_text(json.dumps({'items': []}))
        with pytest.raises(ValidationError, match="no 'comments' list"):
            load_comments(str(path), logger)


class TestValidateFields:
    def test_passes(self, logger) -> None:
        validate_fields([{'id': 'a', 'text': 'x'}], ['id', 'text'], "test", logger)

    def test_reports_missing_field(self, logger) -> None:
        with pytest.raises(ValidationError, match=r"\[cluster\].*'text'"):
            validate_fields([{'id': 'a'}], ['id', 'text'], "cluster", logger)


class TestSaving:
    def test_save_json_creates_directory(self, logger, tmp_path) -> None:
        path = tmp_path / "nested" / "dir" / "out.json"
        save_json(str(path), {'b': [1, 2], 'a': "é"}, logger)
        assert json.loads(path.read_text(encoding='utf-8')) == {'b': [1, 2], 'a': "é"}

    def test_save_table_csv(self, logger, tmp_path) -> None:
        path = tmp_path / "table.csv"
        save_table(pd.DataFrame([{'id': 'a', 'n': 1}]), str(path), logger)
        assert pd.read_csv(path).to_dict('records') == [{'id': 'a', 'n': 1}]


class TestEnvAndConfig:
    def test_load_env_file_does_not_override(self, tmp_path, monkeypatch) -> None:
        env = tmp_path / ".env"
        env.write_text("# comment\nFEEDBACK_TEST_A=from_file\nFEEDBACK_TEST_B = spaced \n")
        monkeypatch.setenv("FEEDBACK_TEST_A", "from_env")
        monkeypatch.delenv("FEEDBACK_TEST_B", raising=False)

        load_env_file(str(env))

        import os
        assert os.environ["FEEDBACK_TEST_A"] == "from_env"
        assert os.environ["FEEDBACK_TEST_B"] == "spaced"
        monkeypatch.delenv("FEEDBACK_TEST_B")

    @pytest.mark.parametrize("value, default, expected", [
        (None, True, True),
        ("", False, False),
        ("true", False, True),
        ("TRUE", False, True),
        ("false", True, False),
        ("yes", True, False),
        (True, False, True),
    ])
    def test_as_boolean(self, value, default, expected) -> None:
        assert as_boolean(value, default) is expected


class TestLoggingAndTracking:
    def test_setup_logging_writes_file(self, tmp_path) -> None:
        log = setup_logging("unit_step", log_dir=str(tmp_path / "logs"))
        log.debug("detail line")
        for handler in log.handlers:
            handler.flush()
        files = list((tmp_path / "logs").glob("unit_step_*.log"))
        assert len(files) == 1
        assert "detail line" in files[0].read_text()
        for handler in list(log.handlers):
            handler.close()
            log.removeHandler(handler)

    def test_tracker_records_checkpoints(self, logger, caplog) -> None:
        tracker = StepTracker("UNIT", logger)
        with caplog.at_level("INFO", logger="tests"):
            tracker.start("doing work")
            tracker.checkpoint("half way", 5)
            tracker.complete("out.json", 10)
        assert [name for name, _, _ in tracker.checkpoints] == ["half way"]
        assert "STARTING: UNIT" in caplog.text
        assert "[CHECKPOINT] half way (5 items)" in caplog.text
        assert "COMPLETED: UNIT" in caplog.text


class TestEmbedComments:
    def test_failures_pass_through_without_embedding(self, fake_embedder, logger) -> None:
        embedder = fake_embedder({'good': [0.1, 0.2]})
        comments = [{'id': 'a', 'text': 'good'}, {'id': 'b', 'text': 'bad'}]

        result = embed_comments(embedder, comments, logger)

        assert result[0]['embedding'] == [0.1, 0.2]
        assert result[1] == {'id': 'b', 'text': 'bad'}
        assert embedder.calls == ['good', 'bad']
