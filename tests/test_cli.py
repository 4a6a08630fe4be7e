"""
Tests for the CLI commands.

Uses Python's unittest module.
Tests argument parsing and the backup commands end to end.
"""

from __future__ import annotations

import io
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from dustgatherer.cli import create_parser, progress_printer


class TestArgumentParser(unittest.TestCase):
    """Tests for CLI argument parsing."""

    def setUp(self) -> None:
        """Set up parser for tests."""
        self.parser = create_parser()

    def test_version_argument(self) -> None:
        """Test --version argument."""
        with self.assertRaises(SystemExit) as cm:
            self.parser.parse_args(["--version"])

        self.assertEqual(cm.exception.code, 0)

    def test_no_command_defaults(self) -> None:
        """Test parsing with no command."""
        args = self.parser.parse_args([])

        self.assertEqual(args.verbose, 0)
        self.assertFalse(args.quiet)
        self.assertIsNone(args.command)

    def test_export_output(self) -> None:
        """Test export accepts an output path."""
        args = self.parser.parse_args(["export", "-o", "/tmp/out.zip"])

        self.assertEqual(args.output, "/tmp/out.zip")
        self.assertTrue(hasattr(args, "func"))

    def test_import_strategy_choices(self) -> None:
        """Test import accepts only known strategies."""
        args = self.parser.parse_args(["import", "b.zip", "--strategy", "import_as_new"])
        self.assertEqual(args.strategy, "import_as_new")
        self.assertEqual(args.backup_file, "b.zip")

        with self.assertRaises(SystemExit):
            self.parser.parse_args(["import", "b.zip", "--strategy", "merge"])

    def test_import_strategy_defaults_to_config(self) -> None:
        """Test no --strategy leaves the choice to the config file."""
        args = self.parser.parse_args(["import", "b.zip"])

        self.assertIsNone(args.strategy)
        self.assertFalse(args.force)

    def test_add_requires_price(self) -> None:
        """Test add requires --price."""
        with self.assertRaises(SystemExit):
            self.parser.parse_args(["add", "Lamp"])


class TestProgressPrinter(unittest.TestCase):
    """Tests for the progress callback."""

    def test_prints_each_percent_once(self) -> None:
        """Test repeated fractions do not print twice."""
        report = progress_printer("Exporting")
        buffer = io.StringIO()

        with redirect_stdout(buffer):
            report(0.5)
            report(0.5)
            report(1.0)

        self.assertEqual(buffer.getvalue().count("50%"), 1)
        self.assertTrue(buffer.getvalue().endswith("100%\n"))


class TestBackupCommands(unittest.TestCase):
    """Runs the add, export, preview and import commands against temp directories."""

    def setUp(self) -> None:
        """Write config files for a source and a target inventory."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.parser = create_parser()
        self.source_config = self._write_config("source")
        self.target_config = self._write_config("target")

    def tearDown(self) -> None:
        """Clean up temporary directory."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, name: str) -> Path:
        path = self.temp_dir / f"{name}.yaml"
        path.write_text(
            f"dustgatherer:\n"
            f"  data_dir: {self.temp_dir / name}\n"
            f"backup:\n"
            f"  output_dir: {self.temp_dir / 'backups'}\n"
        )
        return path

    def _run(self, *argv: str) -> tuple[int, str]:
        args = self.parser.parse_args(list(argv))
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = args.func(args)
        return code, buffer.getvalue()

    def test_export_preview_import(self) -> None:
        """Test a full backup and restore through the CLI."""
        image = self.temp_dir / "lamp.png"
        image.write_bytes(b"png")
        source = str(self.source_config)
        target = str(self.target_config)

        self.assertEqual(self._run("--config", source, "add", "Lamp", "--price", "12.50", "--image", str(image))[0], 0)
        self.assertEqual(self._run("--config", source, "add", "Bowl", "--price", "3", "--date", "2024-02-01")[0], 0)

        archive = self.temp_dir / "out.zip"
        code, text = self._run("--config", source, "export", "-o", str(archive))
        self.assertEqual(code, 0)
        self.assertIn("Items: 2", text)
        self.assertIn("Images: 1", text)

        code, text = self._run("--config", target, "preview", str(archive))
        self.assertEqual(code, 0)
        self.assertIn("Items: 2", text)

        code, text = self._run("--config", target, "import", str(archive), "--force")
        self.assertEqual(code, 0)
        self.assertIn("Imported: 2", text)

        code, text = self._run("--config", target, "list")
        self.assertEqual(code, 0)
        self.assertIn("Lamp", text)
        self.assertIn("Bowl", text)

    def test_add_rejects_bad_price(self) -> None:
        """Test add fails on an unparseable price."""
        code, _ = self._run("--config", str(self.source_config), "add", "Lamp", "--price", "cheap")

        self.assertEqual(code, 1)

    def test_preview_missing_file(self) -> None:
        """Test preview fails on a missing archive."""
        code, _ = self._run("--config", str(self.target_config), "preview", str(self.temp_dir / "nope.zip"))

        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
