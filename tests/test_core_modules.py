import tempfile
import unittest
from pathlib import Path

from jcas import get_version
from jcas.core.config import (
    ExecutionSettings,
    ScoringConfig,
    TransportMode,
    load_scoring_config,
    settings_from_env,
)
from jcas.core.history import ExecutionHistory, ExecutionRecord


class ConfigParsingTests(unittest.TestCase):
    def _write_yaml(self, data: str) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", delete=False, suffix=".yaml")
        tmp.write(data)
        tmp.flush()
        tmp.close()
        self.addCleanup(lambda: Path(tmp.name).unlink(missing_ok=True))
        return Path(tmp.name)

    def test_load_scoring_config(self) -> None:
        path = self._write_yaml(
            """
            question_bank_path: bank.yaml
            history_path: out/history.jsonl
            execution:
              api_url: https://judge0.example/
              cpu_time_limit: 4
              max_attempts: 3
            """
        )
        config = load_scoring_config(path)
        self.assertIsInstance(config, ScoringConfig)
        self.assertEqual(config.question_bank_path, (path.parent / "bank.yaml").resolve())
        self.assertEqual(config.history_path, (path.parent / "out" / "history.jsonl").resolve())
        self.assertEqual(config.execution.api_url, "https://judge0.example")
        self.assertEqual(config.execution.effective_wall_time_limit, 9)
        self.assertEqual(config.execution.max_attempts, 3)
        self.assertIsNone(config.execution.api_key)

    def test_inline_api_key_is_rejected(self) -> None:
        path = self._write_yaml(
            """
            execution:
              api_key: leaked
            """
        )
        with self.assertRaises(ValueError):
            load_scoring_config(path)

    def test_invalid_limits_raise_value_error(self) -> None:
        path = self._write_yaml(
            """
            execution:
              max_attempts: 0
            """
        )
        with self.assertRaises(ValueError):
            load_scoring_config(path)

    def test_settings_defaults(self) -> None:
        settings = ExecutionSettings()
        self.assertEqual(settings.language_id, 62)
        self.assertEqual(settings.cpu_time_limit, 10.0)
        self.assertEqual(settings.memory_limit_kb, 128000)
        self.assertEqual(settings.effective_wall_time_limit, 15.0)
        self.assertEqual(settings.max_attempts, 10)
        self.assertEqual(settings.poll_interval_ms, 1000)
        self.assertEqual(settings.test_case_delay_ms, 500)
        self.assertIs(settings.transport, TransportMode.DIRECT)
        self.assertFalse(settings.has_credentials)

    def test_api_key_is_hidden_from_repr(self) -> None:
        settings = ExecutionSettings(api_key="super-secret")
        self.assertNotIn("super-secret", repr(settings))


class SettingsFromEnvTests(unittest.TestCase):
    def test_overlays_environment(self) -> None:
        settings = settings_from_env(
            ExecutionSettings(cpu_time_limit=3),
            env={
                "JUDGE0_API_KEY": " key-123 ",
                "JUDGE0_PROXY_URL": "https://portal.example/",
                "JUDGE0_TRANSPORT": "Proxied",
            },
        )
        self.assertEqual(settings.api_key, "key-123")
        self.assertEqual(settings.proxy_url, "https://portal.example")
        self.assertIs(settings.transport, TransportMode.PROXIED)
        self.assertEqual(settings.cpu_time_limit, 3)

    def test_empty_environment_returns_base(self) -> None:
        base = ExecutionSettings()
        self.assertIs(settings_from_env(base, env={}), base)

    def test_unknown_transport(self) -> None:
        with self.assertRaises(ValueError):
            settings_from_env(env={"JUDGE0_TRANSPORT": "carrier-pigeon"})


class ExecutionHistoryTests(unittest.TestCase):
    def test_log_and_read_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            history = ExecutionHistory(Path(tmpdir) / "nested" / "history.jsonl")
            history.log({"question_id": "q1", "fragment": "return 1;", "mode": "scored", "percentage": 100})
            history.extend(
                [
                    ExecutionRecord(question_id="q2", fragment="", mode="degraded", detail={"reason": "offline"}),
                ]
            )
            records = history.read()
        self.assertEqual([record.question_id for record in records], ["q1", "q2"])
        self.assertEqual(records[0].percentage, 100)
        self.assertEqual(records[1].detail, {"reason": "offline"})

    def test_read_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            history = ExecutionHistory(Path(tmpdir) / "history.jsonl")
            self.assertEqual(history.read(), [])


class PackageMetadataTests(unittest.TestCase):
    def test_version_is_a_dotted_string(self) -> None:
        version = get_version()
        self.assertIn(".", version)
        self.assertTrue(version[0].isdigit())


if __name__ == "__main__":
    unittest.main()
