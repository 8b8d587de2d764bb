"""Tests for question bank and paper archive database functions."""

from unittest.mock import MagicMock

import pytest

from bioquest.db.papers import create_paper, delete_paper, get_paper, list_papers
from bioquest.db.questions import list_questions, mark_questions_used, release_questions
from bioquest.models.question import Paper, Question, QuestionSource


def _row(qid, marks=2, used_in=None, **extra):
    row = {
        "id": qid,
        "user_id": "user-1",
        "class": 10,
        "chapter": "Cell",
        "text": f"Question {qid}",
        "marks": marks,
        "difficulty": "Easy",
        "used_in": used_in or [],
        "source": "Manual",
        "year": 2025,
        "semester": "1",
        "tags": [],
    }
    row.update(extra)
    return row


def _paper(questions, paper_id="paper-1"):
    return Paper(
        id=paper_id,
        title="Class 10 Paper - 2025",
        year=2025,
        class_level=10,
        semester="2",
        source=QuestionSource.MANUAL,
        questions=questions,
    )


class TestListQuestions:
    """Tests for list_questions."""

    @pytest.mark.asyncio
    async def test_parses_rows(self):
        """Test that rows become Question models, class column included."""
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(
            data=[_row("a", used_in=[{"year": 2024, "semester": "1", "paperId": "p0"}])]
        )

        questions = await list_questions(client, "user-1")

        assert len(questions) == 1
        assert questions[0].class_level == 10
        assert questions[0].used_in[0].paper_id == "p0"
        client.table.assert_called_with("questions")
        query.order.assert_called_once_with("created_at", desc=True)

    @pytest.mark.asyncio
    async def test_class_filter(self):
        """Test that class_level adds an eq filter on the class column."""
        client = MagicMock()
        base = client.table.return_value.select.return_value.eq.return_value
        base.eq.return_value.order.return_value.execute.return_value = MagicMock(data=[])

        await list_questions(client, "user-1", class_level=9)

        base.eq.assert_called_once_with("class", 9)


class TestUsageHistory:
    """Tests for mark_questions_used and release_questions."""

    @pytest.mark.asyncio
    async def test_mark_used_skips_generated(self, make_question):
        """Test that bank questions get the paper appended and generated ones are skipped."""
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=[_row("q1")])
        bank = make_question(2, id="q1")
        generated = make_question(2, id="gen-2025-01-01-abcd1234")

        updated = await mark_questions_used(client, "user-1", _paper([bank, generated]))

        assert updated == 1
        payload = client.table.return_value.update.call_args.args[0]
        assert payload == {
            "used_in": [{"year": 2025, "semester": "2", "paper_id": "paper-1"}]
        }
        update_query = client.table.return_value.update.return_value
        update_query.eq.assert_called_once_with("id", "q1")
        update_query.eq.return_value.eq.assert_called_once_with("user_id", "user-1")

    @pytest.mark.asyncio
    async def test_mark_used_appends_to_stored_history(self, make_question):
        """Test that the stored history is extended, not the one sent with the paper."""
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=[
            _row("q1", used_in=[{"year": 2024, "semester": "1", "paper_id": "paper-0"}]),
        ])
        stale = make_question(2, id="q1")

        await mark_questions_used(client, "user-1", _paper([stale]))

        client.table.return_value.select.return_value.eq.assert_called_once_with(
            "user_id", "user-1"
        )
        payload = client.table.return_value.update.call_args.args[0]
        assert payload == {
            "used_in": [
                {"year": 2024, "semester": "1", "paper_id": "paper-0"},
                {"year": 2025, "semester": "2", "paper_id": "paper-1"},
            ]
        }

    @pytest.mark.asyncio
    async def test_mark_used_ignores_ids_outside_user_bank(self, make_question):
        """Test that a question id the user does not own is never written."""
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=[_row("mine")])
        foreign = make_question(2, id="someone-elses-q")

        assert await mark_questions_used(client, "user-1", _paper([foreign])) == 0
        client.table.return_value.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_mark_used_is_idempotent(self):
        """Test that a question already recorded for the paper is not updated again."""
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=[
            _row("q1", used_in=[{"year": 2025, "semester": "2", "paper_id": "paper-1"}]),
        ])
        question = Question.model_validate(_row("q1"))

        assert await mark_questions_used(client, "user-1", _paper([question])) == 0
        client.table.return_value.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_release_removes_paper(self):
        """Test that only questions referencing the paper are rewritten."""
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.execute.return_value = MagicMock(data=[
            _row("a", used_in=[
                {"year": 2025, "semester": "1", "paper_id": "paper-1"},
                {"year": 2024, "semester": "2", "paper_id": "paper-0"},
            ]),
            _row("b", used_in=[{"year": 2024, "semester": "2", "paper_id": "paper-0"}]),
        ])

        released = await release_questions(client, "user-1", "paper-1")

        assert released == 1
        payload = client.table.return_value.update.call_args.args[0]
        assert payload == {
            "used_in": [{"year": 2024, "semester": "2", "paper_id": "paper-0"}]
        }


class TestPapers:
    """Tests for paper archive CRUD."""

    @pytest.mark.asyncio
    async def test_create_paper(self, make_question):
        """Test that the record uses the class column and the caller's user id."""
        client = MagicMock()
        paper = _paper([make_question(2)])
        stored = paper.model_dump(mode="json", by_alias=True)
        stored["user_id"] = "user-1"
        client.table.return_value.insert.return_value.execute.return_value = MagicMock(
            data=[stored]
        )

        saved = await create_paper(client, paper, "user-1")

        record = client.table.return_value.insert.call_args.args[0]
        assert record["class"] == 10
        assert record["user_id"] == "user-1"
        assert saved.id == "paper-1"
        assert saved.user_id == "user-1"
        assert saved.total_marks == 2

    @pytest.mark.asyncio
    async def test_create_paper_no_data(self):
        client = MagicMock()
        client.table.return_value.insert.return_value.execute.return_value = MagicMock(data=[])

        with pytest.raises(RuntimeError):
            await create_paper(client, _paper([]), "user-1")

    @pytest.mark.asyncio
    async def test_get_paper_missing(self):
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value.eq.return_value
        query.limit.return_value.execute.return_value = MagicMock(data=[])

        assert await get_paper(client, "user-1", "nope") is None

    @pytest.mark.asyncio
    async def test_list_papers(self):
        """Test pagination range and total count."""
        client = MagicMock()
        stored = _paper([]).model_dump(mode="json", by_alias=True)
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.range.return_value.execute.return_value = MagicMock(
            data=[stored], count=7
        )

        items, total = await list_papers(client, "user-1", limit=5, offset=5)

        assert total == 7
        assert [p.id for p in items] == ["paper-1"]
        query.order.return_value.range.assert_called_once_with(5, 9)

    @pytest.mark.asyncio
    async def test_delete_paper(self):
        client = MagicMock()
        query = client.table.return_value.delete.return_value.eq.return_value.eq.return_value
        query.execute.return_value = MagicMock(data=[{"id": "paper-1"}])

        assert await delete_paper(client, "user-1", "paper-1") is True
