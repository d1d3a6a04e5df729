"""
Test helpers shared across the birdlearn test modules.
"""

import datetime

from birdlearn.domain.mastery import Item

START = datetime.datetime(2024, 5, 10, 12, 0, tzinfo=datetime.timezone.utc)


class FakeClock:
    """Settable clock for deterministic scheduling tests."""

    def __init__(self, now: datetime.datetime = START):
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += datetime.timedelta(**kwargs)


BIRDS = [
    Item(item_id=1, scientific_name="Turdus merula", common_name="Amsel", english_name="Common Blackbird"),
    Item(item_id=2, scientific_name="Turdus philomelos", common_name="Singdrossel", english_name="Song Thrush"),
    Item(item_id=3, scientific_name="Parus major", common_name="Kohlmeise", english_name="Great Tit"),
    Item(item_id=4, scientific_name="Cyanistes caeruleus", common_name="Blaumeise", english_name="Eurasian Blue Tit"),
    Item(item_id=5, scientific_name="Erithacus rubecula", common_name="Rotkehlchen", english_name="European Robin"),
    Item(item_id=6, scientific_name="Fringilla coelebs", common_name="Buchfink", english_name="Common Chaffinch"),
    Item(item_id=7, scientific_name="Chloris chloris", common_name="Grünfink", english_name="European Greenfinch"),
]
