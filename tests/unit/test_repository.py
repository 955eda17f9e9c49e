"""
Unit tests for the in-memory repository.
"""

import pytest

from src.core.enums import AssignmentStatus, MatchReasonType
from src.db.memory import InMemoryRepository
from src.schemas.assignment import DocumentClaimAssignment
from src.utils.errors import ConflictError


@pytest.fixture
def repo() -> InMemoryRepository[DocumentClaimAssignment]:
    return InMemoryRepository("Assignment", ("document_id", "claim_id", "status"))


def _assignment(
    document_id: str = "doc-1", claim_id: str = "claim-1", **fields
) -> DocumentClaimAssignment:
    return DocumentClaimAssignment(
        document_id=document_id,
        claim_id=claim_id,
        match_score=80,
        match_reason_type=MatchReasonType.DATE_PROXIMITY,
        **fields,
    )


@pytest.mark.unit
class TestInMemoryRepository:
    """Tests for InMemoryRepository."""

    @pytest.mark.asyncio
    async def test_save_bumps_version(self, repo):
        saved = await repo.save(_assignment())
        again = await repo.save(saved)

        assert saved.version == 1
        assert again.version == 2
        assert (await repo.get(saved.id)).version == 2

    @pytest.mark.asyncio
    async def test_stale_write_conflicts(self, repo):
        saved = await repo.save(_assignment())
        first = await repo.get(saved.id)
        second = await repo.get(saved.id)

        await repo.save(first)

        with pytest.raises(ConflictError):
            await repo.save(second)

    @pytest.mark.asyncio
    async def test_returned_entities_are_copies(self, repo):
        saved = await repo.save(_assignment())

        saved.status = AssignmentStatus.REJECTED
        fetched = await repo.get(saved.id)

        assert fetched.status == AssignmentStatus.CANDIDATE

    @pytest.mark.asyncio
    async def test_index_lookups(self, repo):
        await repo.save(_assignment("doc-1", "claim-1"))
        await repo.save(
            _assignment("doc-1", "claim-2", status=AssignmentStatus.CONFIRMED, illness_id="ill-1")
        )
        await repo.save(_assignment("doc-2", "claim-1"))

        assert await repo.count_by_index("document_id", "doc-1") == 2
        assert await repo.count_by_index("status", AssignmentStatus.CONFIRMED) == 1
        assert await repo.count_by_index("status", "confirmed") == 1
        assert (await repo.find_by_index("claim_id", "claim-2")).document_id == "doc-1"
        assert await repo.find_by_index("claim_id", "claim-9") is None

    @pytest.mark.asyncio
    async def test_lookup_on_unindexed_field(self, repo):
        with pytest.raises(ValueError):
            await repo.find_all_by_index("match_score", 80)

    @pytest.mark.asyncio
    async def test_delete_and_count(self, repo):
        saved = await repo.save(_assignment())
        await repo.save(_assignment("doc-2"))

        assert await repo.count() == 2
        assert await repo.exists(saved.id)
        assert await repo.delete(saved.id)
        assert not await repo.delete(saved.id)
        assert await repo.count() == 1
        assert await repo.find(lambda a: a.document_id == "doc-2")
