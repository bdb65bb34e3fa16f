"""Tests for settings, errors and logging setup."""

import logging

import pytest

from meshsimplify import (
    InvalidInputError,
    MeshSimplifyError,
    ResourceExhaustionError,
    SimplifyConfig,
    setup_logging,
)
from meshsimplify.relevance import RelevanceSphere


def test_defaults():
    config = SimplifyConfig()
    assert config.use_edge_length
    assert config.use_curvature
    assert config.border_curvature == 0.0
    assert config.vertex_fraction == 1.0
    assert config.relevance_spheres == []
    assert config.validate() is config


@pytest.mark.parametrize("overrides", [
    {'vertex_fraction': -0.5},
    {'vertex_fraction': 2.0},
    {'mesh_scale': 0.0},
    {'workers': 0},
    {'chunk_size': 0},
    {'progress_interval': 0},
    {'relevance_spheres': [{'relevance': 0.5}]},
])
def test_invalid_settings(overrides):
    with pytest.raises(InvalidInputError):
        SimplifyConfig().updated(**overrides)


def test_updated_returns_copy():
    config = SimplifyConfig()
    changed = config.updated(border_curvature=3.0)
    assert changed.border_curvature == 3.0
    assert config.border_curvature == 0.0


def test_from_dict_builds_spheres():
    config = SimplifyConfig.from_dict({
        'border_curvature': 2.0,
        'relevance_spheres': [
            {'position': [0.0, 1.0, 0.0], 'relevance': -0.5},
            RelevanceSphere(relevance=0.25),
        ],
    })
    assert config.border_curvature == 2.0
    assert [s.relevance for s in config.relevance_spheres] == [-0.5, 0.25]
    assert config.relevance_spheres[0].contains([0.0, 1.2, 0.0])


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(InvalidInputError, match="bias"):
        SimplifyConfig.from_dict({'bias': 1.0})


def test_error_hierarchy():
    assert issubclass(InvalidInputError, MeshSimplifyError)
    assert issubclass(InvalidInputError, ValueError)
    assert issubclass(ResourceExhaustionError, MeshSimplifyError)


@pytest.fixture
def package_logger():
    logger = logging.getLogger("meshsimplify")
    yield logger
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def test_setup_logging_is_idempotent(package_logger):
    setup_logging(logging.DEBUG)
    logger = setup_logging(logging.INFO)

    assert logger is package_logger
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1


def test_setup_logging_to_file(package_logger, tmp_path):
    log_file = tmp_path / "run.log"
    logger = setup_logging(logging.DEBUG, log_file=str(log_file))
    logging.getLogger("meshsimplify.simplifier").info("hello")
    for handler in logger.handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "Logging initialized." in text
    assert "meshsimplify.simplifier - INFO - hello" in text
