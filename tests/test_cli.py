"""
End-to-end tests for the command line entry point.
"""
import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest.mock import patch

from dto_auto_generator import cli


MANIFEST = textwrap.dedent("""\
    entities:
      - name: User
        source: entities/user.entity.ts
        decorators: ["@Entity()"]
        properties:
          - name: id
            type: number
            decorators: ["@PrimaryKey()"]
          - name: email
            type: string
            decorators: ["@Property()"]
""")

BROKEN_MANIFEST = textwrap.dedent("""\
    entities:
      - name: Post
        decorators: ["@Entity()"]
        properties:
          - name: id
            type: number
            decorators: ["@PrimaryKey()"]
          - name: tags
            type: Collection<Missing>
            decorators: ["@OneToMany()"]
""")


class TestCli(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name).resolve()
        (self.root / "models.yaml").write_text(MANIFEST, encoding="utf-8")
        self.config = self.root / "dto-generator.yaml"
        self.config.write_text(
            "entities: [models.yaml]\noutput_dir: src\ngenerators: [dto, entity-to-dto]\n",
            encoding="utf-8",
        )
        self.user_dir = self.root / "src" / "generated" / "user"

        patcher = patch.object(cli, "setup_colored_logging")
        self.setup_logging = patcher.start()
        self.addCleanup(patcher.stop)

    def test_generates_configured_artifacts(self):
        cli.main(["-c", str(self.config), "--no-color"])

        self.assertTrue((self.user_dir / "user.dto.ts").is_file())
        self.assertTrue((self.user_dir / "user.mapping.ts").is_file())
        self.assertFalse((self.user_dir / "user.create.dto.ts").exists())
        self.setup_logging.assert_called_once()
        self.assertFalse(self.setup_logging.call_args.kwargs["use_colors"])

    def test_dry_run(self):
        cli.main(["-c", str(self.config), "--dry-run"])

        self.assertFalse(self.user_dir.exists())

    def test_cli_overrides_without_config_file(self):
        out = self.root / "out"

        cli.main([
            "-e", str(self.root / "models.yaml"),
            "-o", str(out),
            "-g", "update-dto",
            "-w", "2",
        ])

        self.assertTrue((out / "generated" / "user" / "user.update.dto.ts").is_file())

    def test_partial_failure_exits_with_error(self):
        (self.root / "broken.yaml").write_text(BROKEN_MANIFEST, encoding="utf-8")
        self.config.write_text(
            "entities: [models.yaml, broken.yaml]\noutput_dir: src\ngenerators: [dto]\n",
            encoding="utf-8",
        )

        with self.assertLogs("dto_auto_generator", level="ERROR") as logs:
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["-c", str(self.config)])

        self.assertEqual(ctx.exception.code, 1)
        self.assertTrue((self.user_dir / "user.dto.ts").is_file())
        self.assertTrue(any("Post [dto]" in line for line in logs.output))

    def test_validate_writes_nothing(self):
        with self.assertLogs("dto_auto_generator", level="INFO") as logs:
            cli.main(["-c", str(self.config), "--validate"])

        self.assertFalse((self.root / "src").exists())
        self.assertTrue(any("Configuration is valid" in line for line in logs.output))
        self.assertTrue(any("Found 1 entities in 1 declarations" in line for line in logs.output))

    def test_validate_reports_invalid_manifest(self):
        (self.root / "models.yaml").write_text("entities: [\n", encoding="utf-8")

        with self.assertLogs("dto_auto_generator", level="ERROR"):
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["-c", str(self.config), "--validate"])

        self.assertEqual(ctx.exception.code, 1)
        self.assertFalse((self.root / "src").exists())

    def test_missing_config_exits_with_error(self):
        with self.assertLogs("dto_auto_generator", level="ERROR"):
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["-c", str(self.root / "absent.yaml")])

        self.assertEqual(ctx.exception.code, 1)

    def test_unknown_generator_is_rejected_by_the_parser(self):
        with patch("sys.stderr"):
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["-c", str(self.config), "-g", "delete-dto"])

        self.assertEqual(ctx.exception.code, 2)


if __name__ == '__main__':
    unittest.main()
