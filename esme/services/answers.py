"""
Answer generation: documents + question -> prompt -> LLM -> answer.

Shared by the interactive web path (Google token from the session) and the
Slack event path (token refreshed server-side).
"""

from typing import Callable, List, Optional, Sequence
import logging

from ..errors import DocumentFetchError
from ..models.conversation import Conversation
from .documents import DocumentContent, DocumentFetcher
from .llm import LLMService

logger = logging.getLogger(__name__)

DocumentFetcherFactory = Callable[[str], DocumentFetcher]


def build_prompt(system_prompt: str, documents: Sequence[DocumentContent], question: str) -> str:
    """Assemble the single prompt string sent to the LLM."""
    prompt = f"{system_prompt}\n\n***DOCUMENTS CONTENT***\n\n"

    for index, document in enumerate(documents, start=1):
        prompt += f"\n--- START DOCUMENT {index} ({document.name} - {document.mime_type}) ---\n"
        prompt += document.content or ""
        prompt += f"\n--- END DOCUMENT {index} ---\n"

    prompt += (
        f"\n***USER REQUEST***\n\n"
        f"{question.strip()}\n\n"
        f"***INSTRUCTIONS***\n\n"
        f"Please provide a comprehensive and accurate response based on the document content above. "
        f"If the information needed to answer the question is not available in the documents, please state that clearly.\n\n"
        f"***AI RESPONSE***\n\n"
    )
    return prompt


class AnswerPipeline:
    """Builds prompts from a conversation's documents and asks the LLM."""

    def __init__(
        self,
        llm: LLMService,
        default_system_prompt: str,
        fetcher_factory: DocumentFetcherFactory = DocumentFetcher
    ):
        self.llm = llm
        self.default_system_prompt = default_system_prompt
        self.fetcher_factory = fetcher_factory

    def collect_documents(self, conversation: Conversation, access_token: str) -> List[DocumentContent]:
        """Fetch every attached document; failures become inline error notes."""
        fetcher = self.fetcher_factory(access_token)
        contents = []

        for document in conversation.documents:
            try:
                fetched = fetcher.fetch(document.drive_file_id, document.mime_type)
                contents.append(DocumentContent(
                    name=fetched.name or document.name,
                    mime_type=fetched.mime_type or document.mime_type,
                    content=fetched.content or ""
                ))
            except DocumentFetchError as e:
                logger.warning(f"Error reading document {document.drive_file_id}: {e}")
                contents.append(DocumentContent(
                    name=document.name or f"File ID: {document.drive_file_id}",
                    mime_type=document.mime_type or "error",
                    content=f"Error reading file: {e}. Content not included."
                ))

        return contents

    def generate_answer(
        self,
        conversation: Conversation,
        question: str,
        access_token: str,
        system_prompt: Optional[str] = None
    ) -> str:
        """Answer a question about the conversation's documents. Raises LLMServiceError on LLM failure."""
        final_system_prompt = (
            (system_prompt or "").strip()
            or conversation.system_prompt
            or self.default_system_prompt
        )

        documents = self.collect_documents(conversation, access_token)
        prompt = build_prompt(final_system_prompt, documents, question)

        logger.info(f"Generating answer for conversation {conversation.id} over {len(documents)} document(s)")
        return self.llm.complete(prompt)
