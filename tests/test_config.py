import sys
from dataclasses import FrozenInstanceError
from unittest import mock

import pytest

from wirescope.config import DefaultConfig, FrozenSlot, GraphConfig
from wirescope.utils.param_utils import MISSING, is_provided


def test_import_graphviz_failure():
    with mock.patch.dict(sys.modules, {"graphviz": None}):
        # Remove cached wirescope module
        if "wirescope" in sys.modules:
            del sys.modules["wirescope"]

        import wirescope

        assert not hasattr(
            wirescope, "Visualizer"
        ), "Visualizer should not be available when graphviz is missing"


def test_graph_config():
    config = GraphConfig(thread_safe=False)

    assert config == GraphConfig(thread_safe=False)
    assert config != DefaultConfig
    assert DefaultConfig.thread_safe is True
    assert hash(config) == hash(GraphConfig(thread_safe=False))
    assert repr(config) == "GraphConfig(thread_safe=False)"

    with pytest.raises(FrozenInstanceError):
        config.thread_safe = True  # type: ignore


def test_frozen_slot_compares_by_class():
    class Other(FrozenSlot):
        __slots__ = ("thread_safe",)

        def __init__(self):
            object.__setattr__(self, "thread_safe", True)

    assert Other() != GraphConfig()


def test_missing_sentinel():
    assert not MISSING
    assert repr(MISSING) == "MISSING"
    assert not is_provided(MISSING)
    assert is_provided(None)
