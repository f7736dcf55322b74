import os
import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError

from media_meta.config import FallbackMethod, MetaFormat, Settings, SortOrder, find_config
from media_meta.source import Anchor


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = Settings()
        self.assertEqual(settings.sort_order, SortOrder.NAME)
        self.assertEqual(settings.meta_format, MetaFormat.YAML)
        self.assertEqual(settings.item_fn, "item.yml")
        self.assertEqual(settings.self_fn, "self.yml")
        self.assertEqual(settings.default_fallback, FallbackMethod.NONE)

    def test_file_names_follow_format(self) -> None:
        settings = Settings.model_validate({"meta_format": "json"})
        self.assertEqual(settings.item_fn, "item.json")
        self.assertEqual(settings.self_fn, "self.json")

    def test_file_names_must_differ(self) -> None:
        with self.assertRaises(ValidationError):
            Settings.model_validate({"item_fn": "meta.yml", "self_fn": "meta.yml"})
        with self.assertRaises(ValidationError):
            Settings.model_validate({"self_fn": "item.yml"})

    def test_load_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yaml"
            path.write_text(
                "\n".join(
                    [
                        "sort_order: mod_time",
                        "item_fn: meta.yml",
                        "selection:",
                        "  include: '*.flac'",
                        "  exclude_dirs: [scans]",
                        "fallbacks:",
                        "  artist: inherit",
                        "  title: collect",
                        "default_fallback: override",
                        "",
                    ]
                ),
                encoding="utf-8",
            )
            settings = Settings.load(path)
        self.assertEqual(settings.sort_order, SortOrder.MOD_TIME)
        self.assertEqual(settings.item_fn, "meta.yml")
        self.assertEqual(settings.self_fn, "self.yml")
        self.assertEqual(settings.selection.include_files, ["*.flac"])
        self.assertEqual(settings.selection.exclude_dirs, ["scans"])
        self.assertEqual(settings.fallback_for("artist"), FallbackMethod.INHERIT)
        self.assertEqual(settings.fallback_for("title"), FallbackMethod.COLLECT)
        self.assertEqual(settings.fallback_for("genre"), FallbackMethod.OVERRIDE)

    def test_empty_file_gives_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.yml"
            path.write_text("", encoding="utf-8")
            self.assertEqual(Settings.load(path).item_fn, "item.yml")

    def test_unknown_options_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            Settings.model_validate({"sort_by": "name"})
        with self.assertRaises(ValidationError):
            Settings.model_validate({"fallbacks": {"a": "sometimes"}})

    def test_build_selection_excludes_source_files(self) -> None:
        selection = Settings().build_selection()
        self.assertFalse(selection.is_file_pattern_match("item.yml"))
        self.assertFalse(selection.is_file_pattern_match("self.yml"))
        self.assertTrue(selection.is_file_pattern_match("track.flac"))

        kept = Settings.model_validate({"selection": {"exclude_sources": False}}).build_selection()
        self.assertTrue(kept.is_file_pattern_match("item.yml"))

    def test_build_sourcer_orders_item_before_self(self) -> None:
        sources = list(Settings().build_sourcer())
        self.assertEqual([(s.name, s.anchor) for s in sources], [
            ("item.yml", Anchor.EXTERNAL),
            ("self.yml", Anchor.INTERNAL),
        ])


class TestFindConfig(unittest.TestCase):
    def test_explicit_path_wins(self) -> None:
        self.assertEqual(find_config(Path("x.yaml")), Path("x.yaml"))

    def test_looks_in_working_directory(self) -> None:
        previous = Path.cwd()
        with tempfile.TemporaryDirectory() as tmpdir:
            try:
                os.chdir(tmpdir)
                self.assertIsNone(find_config(None))
                (Path(tmpdir) / "config.yml").write_text("", encoding="utf-8")
                self.assertEqual(find_config(None), Path.cwd() / "config.yml")
            finally:
                os.chdir(previous)


if __name__ == "__main__":
    unittest.main()
