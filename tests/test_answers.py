"""
Tests for the answer generation pipeline.
"""

from unittest.mock import Mock

from esme.errors import DocumentFetchError
from esme.services.answers import AnswerPipeline, build_prompt
from esme.services.documents import DocumentContent, GOOGLE_DOC


def test_build_prompt_layout():
    documents = [
        DocumentContent(name="Budget", mime_type=GOOGLE_DOC, content="Total $1M"),
        DocumentContent(name="Plan", mime_type=GOOGLE_DOC, content="Ship in Q3"),
    ]

    prompt = build_prompt("You are helpful.", documents, "  What's the budget?  ")

    assert prompt.startswith("You are helpful.\n\n***DOCUMENTS CONTENT***")
    assert f"--- START DOCUMENT 1 (Budget - {GOOGLE_DOC}) ---\nTotal $1M\n--- END DOCUMENT 1 ---" in prompt
    assert "--- START DOCUMENT 2 (Plan" in prompt
    assert "***USER REQUEST***\n\nWhat's the budget?\n\n***INSTRUCTIONS***" in prompt
    assert prompt.endswith("***AI RESPONSE***\n\n")
    assert prompt.index("Total $1M") < prompt.index("Ship in Q3") < prompt.index("What's the budget?")


def test_build_prompt_without_documents():
    prompt = build_prompt("System.", [], "Hi")

    assert "START DOCUMENT" not in prompt
    assert "***USER REQUEST***\n\nHi" in prompt


def test_generate_answer_uses_conversation_documents(conversation, mock_llm, fake_fetcher_factory):
    pipeline = AnswerPipeline(mock_llm, "Default prompt.", fetcher_factory=fake_fetcher_factory)

    answer = pipeline.generate_answer(conversation, "What's the budget?", "ya29.session")

    assert answer == "The Q3 budget is $1M."
    assert fake_fetcher_factory.tokens == ["ya29.session"]
    prompt = mock_llm.complete.call_args[0][0]
    assert prompt.startswith("You are a finance analyst.")
    assert "Budget for doc-budget: $1M" in prompt


def test_system_prompt_precedence(conversation, test_session, mock_llm, fake_fetcher_factory):
    pipeline = AnswerPipeline(mock_llm, "Default prompt.", fetcher_factory=fake_fetcher_factory)

    pipeline.generate_answer(conversation, "Q", "token", system_prompt="Per-request prompt.")
    assert mock_llm.complete.call_args[0][0].startswith("Per-request prompt.")

    conversation.system_prompt = None
    test_session.commit()
    pipeline.generate_answer(conversation, "Q", "token", system_prompt="   ")
    assert mock_llm.complete.call_args[0][0].startswith("Default prompt.")


def test_unreadable_document_becomes_inline_note(conversation, mock_llm):
    fetcher = Mock()
    fetcher.fetch.side_effect = DocumentFetchError("403 Forbidden")
    pipeline = AnswerPipeline(mock_llm, "Default prompt.", fetcher_factory=lambda token: fetcher)

    documents = pipeline.collect_documents(conversation, "token")

    assert len(documents) == 1
    assert documents[0].name == "Budget 2024"
    assert documents[0].content == "Error reading file: 403 Forbidden. Content not included."
