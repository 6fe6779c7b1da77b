"""
this file contains fixtures that are intended to be used across multiple test
files
"""

from typing import List

import pytest

from transit_copier.adapters.direct import DirectReader, DirectWriter
from transit_copier.copier.options import CopierOptions
from transit_copier.gtfs.entities import Entity

from .test_resources import simple_feed


@pytest.fixture(name="feed_entities")
def fixture_feed_entities() -> List[Entity]:
    """entities of the simple test feed"""
    return simple_feed()


@pytest.fixture(name="feed_reader")
def fixture_feed_reader(feed_entities: List[Entity]) -> DirectReader:
    """in memory reader over the simple test feed"""
    return DirectReader(feed_entities)


@pytest.fixture(name="writer")
def fixture_writer() -> DirectWriter:
    """in memory writer"""
    return DirectWriter()


@pytest.fixture(name="quiet_options")
def fixture_quiet_options() -> CopierOptions:
    """default options without the result summary logs"""
    return CopierOptions(quiet=True)
