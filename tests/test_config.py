import pytest

from sentinel.actions import CATEGORY_ORDER, NONE, Category
from sentinel.config import (DEFAULT_SHELL, DEFAULT_STOP_STATUSES,
                             resolve_config)


def test_defaults():
    cfg = resolve_config()
    assert cfg.paths == ()
    assert cfg.enabled == NONE
    assert all(cfg.script_for(c) == "" for c in CATEGORY_ORDER)
    assert cfg.loop is False
    assert cfg.shell == DEFAULT_SHELL
    assert cfg.stop_statuses == DEFAULT_STOP_STATUSES


def test_explicit_flags_without_scripts():
    cfg = resolve_config(flags={Category.CREATE: True, Category.WRITE: True})
    assert cfg.enabled == Category.CREATE | Category.WRITE
    assert cfg.script_for(Category.CREATE) == ""


def test_script_implies_flag():
    cfg = resolve_config(scripts={Category.DELETE: "/tmp/d.sh", Category.RENAME: ""})
    assert cfg.enabled == Category.DELETE
    assert cfg.script_for(Category.DELETE) == "/tmp/d.sh"


@pytest.mark.parametrize("category", CATEGORY_ORDER)
def test_each_script_forces_its_flag(category):
    cfg = resolve_config(flags={category: False}, scripts={category: "/tmp/x.sh"})
    assert cfg.enabled & category


def test_script_all_overrides_every_entry():
    cfg = resolve_config(
        flags={Category.CREATE: True},
        scripts={Category.CREATE: "/tmp/a.sh", Category.CHMOD: "/tmp/m.sh"},
        script_all="/tmp/all.sh",
    )
    for category in CATEGORY_ORDER:
        assert cfg.script_for(category) == "/tmp/all.sh"


def test_script_all_does_not_enable_categories():
    cfg = resolve_config(flags={Category.WRITE: True}, script_all="/tmp/all.sh")
    assert cfg.enabled == Category.WRITE


def test_script_all_keeps_implied_flags():
    cfg = resolve_config(scripts={Category.CREATE: "/tmp/a.sh"}, script_all="/tmp/all.sh")
    assert cfg.enabled == Category.CREATE
    assert cfg.script_for(Category.CREATE) == "/tmp/all.sh"


def test_scenario_create_write():
    cfg = resolve_config(
        paths=["/tmp/watched"],
        flags={Category.CREATE: True, Category.WRITE: True},
        scripts={Category.CREATE: "/tmp/a.sh"},
    )
    assert cfg.paths == ("/tmp/watched",)
    assert cfg.enabled == Category.CREATE | Category.WRITE
    assert cfg.script_for(Category.CREATE) == "/tmp/a.sh"
    assert cfg.script_for(Category.WRITE) == ""


def test_config_is_immutable():
    cfg = resolve_config(scripts={Category.CREATE: "/tmp/a.sh"})
    with pytest.raises(Exception):
        cfg.loop = True
    with pytest.raises(TypeError):
        cfg.actions[Category.CREATE] = "/tmp/b.sh"


def test_custom_shell_and_stop_statuses():
    cfg = resolve_config(shell="sh", stop_statuses=[3])
    assert cfg.shell == "sh"
    assert cfg.stop_statuses == (3,)
