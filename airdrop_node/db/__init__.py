from .activity_store import DBActivityStore
from .repositories import (
    DBAirdropLeafRepository, DBAirdropScoreRepository, DBAirdropSnapshotRepository,
)
