from __future__ import annotations

import pytest

from erp_migration.parsing.registry import PARSE_CONFIG_NAMES, get_parse_config
from erp_migration.parsing.schema import validate_parse_options


@pytest.mark.parametrize("name", PARSE_CONFIG_NAMES)
def test_registered_configs_are_valid(name: str) -> None:
    config = get_parse_config(name)
    assert config.name == name
    for record_type, options in config.parse_options.items():
        validate_parse_options(record_type, options)
    assert set(config.process_options) <= set(config.parse_options)


def test_unknown_config() -> None:
    with pytest.raises(ValueError, match="Unknown parse config"):
        get_parse_config("vendor")
