"""Fixtures: a recording exporter and hubs wired to it."""

import pytest

from tracehub import Client, Hub, Sampler

from tests.support import DSN, FixedRandom, RecordingExporter


@pytest.fixture
def exporter():
    return RecordingExporter()


@pytest.fixture
def make_hub(exporter):
    """Build a hub whose client records into `exporter`; options go to the client."""

    def _make(random_value=None, **options):
        options.setdefault("dsn", DSN)
        sampler = Sampler(FixedRandom(random_value)) if random_value is not None else None
        return Hub(Client(options, exporter=exporter), sampler=sampler)

    return _make
