from __future__ import annotations

import os

from settings import CONFIG_FILENAME, resolve_config_path


def test_explicit_config_path_wins(tmp_path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("{}", encoding="utf-8")
    custom = tmp_path / "elsewhere.json"

    path = resolve_config_path(str(custom), str(tmp_path), "/opt/checkout")

    assert path == str(custom)


def test_working_directory_config_beats_checkout(tmp_path) -> None:
    (tmp_path / CONFIG_FILENAME).write_text("{}", encoding="utf-8")

    path = resolve_config_path(None, str(tmp_path), "/opt/checkout")

    assert path == str(tmp_path / CONFIG_FILENAME)


def test_checkout_config_is_last_resort(tmp_path) -> None:
    path = resolve_config_path("", str(tmp_path), "/opt/checkout")

    assert path == os.path.join("/opt/checkout", CONFIG_FILENAME)
