"""Tests for route_builder.cli module."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from conftest import SAMPLE_SCHEMA, FakeExtractor
from route_builder.cli import build_parser, main
from route_builder.models import ExtractionResult


class TestBuildParser:
    def test_requires_command(self):
        parser = build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args([])

    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve"])
        assert args.command == "serve"
        assert args.host == "127.0.0.1"
        assert args.port == 8000

    def test_routes_show_schema_flag(self):
        args = build_parser().parse_args(["routes", "show", "nvidia-cap", "--schema"])
        assert args.action == "show"
        assert args.route == "nvidia-cap"
        assert args.schema is True

    def test_build_requires_route(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["build", "NVIDIA market cap"])

    def test_build_repeatable_url(self):
        args = build_parser().parse_args([
            "build", "q", "--route", "r", "--url", "https://a.com", "--url", "https://b.com",
        ])
        assert args.urls == ["https://a.com", "https://b.com"]
        assert args.top == 3

    def test_provider_short_flag(self):
        args = build_parser().parse_args(["build", "q", "--route", "r", "-p", "ollama"])
        assert args.provider == "ollama"

    def test_invalid_provider_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["build", "q", "--route", "r", "-p", "nope"])

    def test_global_flags(self):
        args = build_parser().parse_args(["-v", "--memory", "routes", "list"])
        assert args.verbose is True
        assert args.memory is True


@pytest.fixture(autouse=True)
def _no_dotenv():
    with patch("route_builder.config.load_dotenv"):
        yield


class TestMain:
    def test_routes_list_empty(self, capsys):
        assert main(["--memory", "routes", "list"]) == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_routes_show_missing(self, capsys):
        assert main(["--memory", "routes", "show", "ghost"]) == 1
        assert "Error: No results found for this endpoint" in capsys.readouterr().err

    def test_routes_delete_missing_succeeds(self, capsys):
        assert main(["--memory", "routes", "delete", "ghost"]) == 0
        assert "Deleted ghost" in capsys.readouterr().err

    def test_upstash_without_config(self, capsys, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "upstash")
        monkeypatch.setenv("UPSTASH_REDIS_REST_URL", "")
        monkeypatch.setenv("UPSTASH_REDIS_REST_TOKEN", "")
        assert main(["routes", "list"]) == 1
        assert "Redis configuration is missing" in capsys.readouterr().err

    def test_serve_runs_uvicorn(self):
        with patch("uvicorn.run") as mock_run:
            assert main(["--memory", "serve", "--port", "9000"]) == 0
        assert mock_run.call_args.kwargs == {"host": "127.0.0.1", "port": 9000}


class TestBuildCommand:
    def test_build_with_urls_and_schema_file(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv("API_ROUTE", "https://api.example.com")
        schema_file = tmp_path / "schema.json"
        schema_file.write_text(json.dumps(SAMPLE_SCHEMA))
        out_file = tmp_path / "out.json"
        extractor = FakeExtractor()

        with patch("route_builder.cli.Extractor.from_settings", return_value=extractor), \
             patch("route_builder.cli.get_provider", return_value=MagicMock()):
            code = main([
                "--memory", "build", "NVIDIA market cap",
                "--route", "NVIDIA Cap",
                "--url", "https://a.com",
                "--schema-file", str(schema_file),
                "-o", str(out_file),
            ])

        assert code == 0
        deployed = json.loads(capsys.readouterr().out)
        assert deployed["route"] == "nvidia-cap"
        assert deployed["url"] == "https://api.example.com/results/nvidia-cap"
        assert json.loads(out_file.read_text()) == {"price": 456}
        assert extractor.calls == [(["https://a.com"], "NVIDIA market cap", SAMPLE_SCHEMA)]

    def test_query_read_from_file(self, tmp_path, capsys):
        query_file = tmp_path / "query.md"
        query_file.write_text("  Latest NVIDIA share price  \n")
        schema_file = tmp_path / "schema.json"
        schema_file.write_text(json.dumps(SAMPLE_SCHEMA))
        extractor = FakeExtractor()

        with patch("route_builder.cli.Extractor.from_settings", return_value=extractor), \
             patch("route_builder.cli.get_provider", return_value=MagicMock()):
            code = main([
                "--memory", "build", str(query_file),
                "--route", "r", "--url", "https://a.com", "--schema-file", str(schema_file),
            ])

        assert code == 0
        assert extractor.calls[0][1] == "Latest NVIDIA share price"

    def test_build_extraction_failure(self, tmp_path, capsys):
        schema_file = tmp_path / "schema.json"
        schema_file.write_text(json.dumps(SAMPLE_SCHEMA))
        failing = FakeExtractor(ExtractionResult(success=False, error="nothing found"))

        with patch("route_builder.cli.Extractor.from_settings", return_value=failing), \
             patch("route_builder.cli.get_provider", return_value=MagicMock()):
            code = main([
                "--memory", "build", "q",
                "--route", "r", "--url", "https://a.com", "--schema-file", str(schema_file),
            ])

        assert code == 1
        assert "Error: nothing found" in capsys.readouterr().err
