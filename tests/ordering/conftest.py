import pytest
from ordering.catalogue import set_catalogue
from ordering.catalogue.fake_adapter import InMemoryCatalogue
from ordering.sequence import set_sequence_counter
from ordering.sequence.fake_adapter import InMemorySequenceCounter
from protean.integrations.pytest import DomainFixture

SHIPPING_ADDRESS = {
    "name": "Ama Mensah",
    "street": "12 Ring Road",
    "city": "Accra",
    "state": "Greater Accra",
    "zip_code": "00233",
    "country": "GH",
    "phone": "+233200000000",
}


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def catalogue():
    """A fresh in-memory catalogue wired in as the active adapter."""
    catalogue = InMemoryCatalogue(timeout=2.0)
    set_catalogue(catalogue)
    return catalogue


@pytest.fixture()
def counter():
    counter = InMemorySequenceCounter(timeout=2.0)
    set_sequence_counter(counter)
    return counter


@pytest.fixture()
def shipping_address():
    return dict(SHIPPING_ADDRESS)
