"""Tests for config commands (show and classpath).

Integration tests using CliRunner for:
- unrepl-client config show
- unrepl-client config classpath
"""

from pathlib import Path

from typer.testing import CliRunner

from unrepl_client.cli import app
from unrepl_client.cli_utils import EXIT_CONFIG_ERROR, EXIT_ERROR

runner = CliRunner()


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestConfigShowCommand:
    """Tests for 'unrepl-client config show' command."""

    def test_show_prints_config(self, tmp_path: Path) -> None:
        config = write_config(tmp_path, "source_mode: clojurescript\n")

        result = runner.invoke(app, ["config", "show", "--config", str(config)])

        assert result.exit_code == 0
        assert "source_mode: clojurescript" in result.output
        assert "server_shutdown_timeout" in result.output

    def test_show_missing_config(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["config", "show", "--config", str(tmp_path / "none.yaml")])

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "not found" in result.output

    def test_show_invalid_config(self, tmp_path: Path) -> None:
        config = write_config(tmp_path, "server_shutdown_timeout: -5\n")

        result = runner.invoke(app, ["config", "show", "--config", str(config)])

        assert result.exit_code == EXIT_CONFIG_ERROR


class TestConfigClasspathCommand:
    """Tests for 'unrepl-client config classpath' command."""

    def test_classpath_lists_existing_entries(self, tmp_path: Path) -> None:
        project = tmp_path / "proj"
        project.mkdir()
        lib = tmp_path / "lib"
        lib.mkdir()
        config = write_config(tmp_path, f"global_classpath:\n  - {tmp_path / 'missing'}\n  - {lib}\n")

        result = runner.invoke(app, ["config", "classpath", str(project), "--config", str(config)])

        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines == [str(project.resolve()), str(lib.resolve())]

    def test_classpath_with_extra(self, tmp_path: Path) -> None:
        project = tmp_path / "proj"
        (project / "resources").mkdir(parents=True)
        config = write_config(tmp_path, "{}\n")

        result = runner.invoke(
            app,
            ["config", "classpath", str(project), "--extra", str(project / "resources"), "-c", str(config)],
        )

        assert result.exit_code == 0
        assert result.output.strip().splitlines()[1] == str((project / "resources").resolve())

    def test_classpath_not_a_directory(self, tmp_path: Path) -> None:
        config = write_config(tmp_path, "{}\n")

        result = runner.invoke(
            app, ["config", "classpath", str(tmp_path / "nope"), "--config", str(config)]
        )

        assert result.exit_code == EXIT_ERROR
        assert "Not a directory" in result.output
