import json
import sys

import pytest
import yaml

from evaluator.cli.cli import parse_evaluate_args
from evaluator.config.config_loader import DEBUG_ENV_VAR, build_config
from evaluator.config.provider_entry import ProviderEntry
from evaluator.run_evaluation import apply_overrides, build_service, main
from evaluator.service.provider.command_provider import CommandProvider
from evaluator.service.report.json_report_sink import JsonReportSink

ECHO_SCRIPT = "import sys; print('answer: ' + sys.stdin.read())"


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Config directory with a python-backed provider standing in for a runtime."""
    monkeypatch.delenv(DEBUG_ENV_VAR, raising=False)
    config = tmp_path / "config"
    config.mkdir()
    data = {
        "metrics": {"sampling_interval": 0.05, "gpu_probe": False},
        "request_timeout": 30,
        "runs": 1,
        "output_dir": str(tmp_path / "unused"),
        "report_formats": ["json"],
        "prompts": ["ping"],
        "providers": [
            {"id": "echo", "models": ["tiny"], "command": [sys.executable, "-c", ECHO_SCRIPT]},
            {"id": "other", "models": ["m1", "m2"], "command": ["ollama", "run", "{model}"]},
        ],
    }
    (config / "config.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")
    return config


class TestParseArgs:

    def test_defaults(self):
        args = parse_evaluate_args([])
        assert args.env is None
        assert args.runs is None
        assert args.verbose_metrics is False

    def test_all_flags(self):
        args = parse_evaluate_args([
            "--env", "dev", "--config", "cfg", "--provider", "local", "--model", "llama3.2",
            "--prompt", "hi", "--runs", "3", "--interval", "0.5", "--timeout", "20",
            "--verbose-metrics", "--out", "reports",
        ])
        assert args.env == "dev"
        assert args.runs == 3
        assert args.interval == pytest.approx(0.5)
        assert args.timeout == pytest.approx(20.0)
        assert args.verbose_metrics is True
        assert args.out == "reports"

    @pytest.mark.parametrize("argv", [["--runs", "0"], ["--interval", "0"], ["--timeout", "-1"]])
    def test_rejects_out_of_range(self, argv):
        with pytest.raises(SystemExit):
            parse_evaluate_args(argv)


class TestOverrides:

    def make_config(self):
        config = build_config({"prompts": ["a", "b"]})
        config.providers = [
            ProviderEntry(id="local", models=["llama3.2", "phi3"], command=["ollama"]),
            ProviderEntry(id="lmstudio", models=["qwen"], command=["lms"]),
        ]
        return config

    def test_overrides(self):
        args = parse_evaluate_args(["--provider", "local", "--model", "mistral", "--prompt", "hi",
                                    "--runs", "2", "--interval", "0.25", "--verbose-metrics", "--out", "x"])
        config = apply_overrides(self.make_config(), args)

        assert [p.id for p in config.providers] == ["local"]
        assert config.providers[0].models == ["mistral"]
        assert config.prompts == ["hi"]
        assert config.runs == 2
        assert config.sampling_interval == pytest.approx(0.25)
        assert config.enable_debug_output is True
        assert config.output_dir == "x"

    def test_no_overrides_keeps_config(self):
        config = apply_overrides(self.make_config(), parse_evaluate_args([]))
        assert len(config.providers) == 2
        assert config.prompts == ["a", "b"]

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            apply_overrides(self.make_config(), parse_evaluate_args(["--provider", "nope"]))


def test_build_service():
    config = build_config({
        "metrics": {"sampling_interval": 0.5, "gpu_probe": False},
        "request_timeout": 12,
        "report_formats": ["json"],
        "providers": [{"id": "local", "models": ["m"], "command": ["ollama", "run", "{model}"]}],
        "process_patterns": {"vllm": {"include": ["vllm"]}},
    })
    service = build_service(config)

    assert [type(p) for p in service.get_providers()] == [CommandProvider]
    assert [type(s) for s in service.report_sinks] == [JsonReportSink]
    assert service.default_timeout == pytest.approx(12.0)
    assert service.collector.sampler.interval == pytest.approx(0.5)
    assert "vllm" in service.collector.classifier.known_providers


def test_main_end_to_end(config_dir, tmp_path, capsys):
    out_dir = tmp_path / "reports"
    main(["--config", str(config_dir), "--provider", "echo", "--runs", "2", "--out", str(out_dir)])

    reports = list(out_dir.glob("session_*.json"))
    assert len(reports) == 1
    data = json.loads(reports[0].read_text(encoding="utf-8"))
    assert data["end_time"] is not None
    assert len(data["results"]) == 2
    for result in data["results"]:
        assert result["is_success"] is True
        assert result["response"] == "answer: ping"
        assert result["metrics"] is not None

    out = capsys.readouterr().out
    assert "=== Summary ===" in out
    assert "echo / tiny" in out


def test_main_requires_prompts(config_dir, tmp_path):
    data = yaml.safe_load((config_dir / "config.yaml").read_text(encoding="utf-8"))
    data["prompts"] = []
    (config_dir / "config.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")
    with pytest.raises(ValueError):
        main(["--config", str(config_dir), "--out", str(tmp_path / "r")])
