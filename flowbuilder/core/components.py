"""Component catalog: one handler per workflow node kind."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ..models.core import ComponentKind, StepStatus, WorkflowNode
from .collaborators import DocumentMatcher, DocumentSource, ModelClient, SubstringMatcher
from .context import ExecutionContext
from .logging import get_logger

logger = get_logger(__name__)

NO_DOCUMENTS_MESSAGE = "No documents found in knowledge base"
RETRIEVAL_ERROR = "Failed to retrieve knowledge base context"
LLM_ERROR = "LLM execution failed"
LLM_APOLOGY = "I apologize, but I encountered an error processing your request. Please try again."
NO_RESPONSE = "No response generated"

DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL = "gpt-4"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_OUTPUT_FORMAT = "chat"


@dataclass
class StepOutcome:
    """What a component produced for one step."""
    output: Any
    status: StepStatus = StepStatus.SUCCESS
    error_message: Optional[str] = None


class Component(ABC):
    """Handler for one node kind."""

    kind: Optional[ComponentKind] = None
    records_steps: bool = True

    def input_snapshot(self, context: ExecutionContext) -> Any:
        """Input recorded for the step; defaults to the previous step's output."""
        return context.current_data

    @abstractmethod
    def run(self, node: WorkflowNode, context: ExecutionContext) -> StepOutcome:
        """Execute the node against the context and return its outcome."""


class NoOpComponent(Component):
    """Stands in for node kinds outside the catalog. Leaves the run untouched."""

    records_steps = False

    def run(self, node: WorkflowNode, context: ExecutionContext) -> StepOutcome:
        return StepOutcome(output=context.current_data)


class UserQueryComponent(Component):
    """Entry point of a workflow: annotates the raw user query."""

    kind = ComponentKind.USER_QUERY

    def input_snapshot(self, context: ExecutionContext) -> Any:
        return {"query": context.user_query}

    def run(self, node: WorkflowNode, context: ExecutionContext) -> StepOutcome:
        return StepOutcome(output={
            "query": context.user_query,
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "config": dict(node.config),
        })


class KnowledgeBaseComponent(Component):
    """Folds the workflow documents that mention the query into a context string."""

    kind = ComponentKind.KNOWLEDGE_BASE

    def __init__(
        self,
        document_source: DocumentSource,
        matcher: Optional[DocumentMatcher] = None,
        max_documents: int = 3,
        snippet_length: int = 1000
    ):
        self.document_source = document_source
        self.matcher = matcher or SubstringMatcher()
        self.max_documents = max_documents
        self.snippet_length = snippet_length

    def run(self, node: WorkflowNode, context: ExecutionContext) -> StepOutcome:
        try:
            documents = list(self.document_source.get_documents(context.workflow_id))

            if not documents:
                return StepOutcome(output={
                    "context": "",
                    "message": NO_DOCUMENTS_MESSAGE,
                    "documentsCount": 0,
                })

            query = context.current_value("query") or context.user_query
            relevant = self.matcher.match(query, documents)

            context_text = "\n\n".join(
                f"Document: {doc.filename}\n{doc.content[:self.snippet_length]}"
                for doc in relevant[:self.max_documents]
            )

            return StepOutcome(output={
                "context": context_text,
                "relevantDocuments": len(relevant),
                "totalDocuments": len(documents),
                "query": query,
            })

        except Exception as e:
            logger.error(f"Knowledge base retrieval failed for workflow {context.workflow_id}: {str(e)}")
            message = str(e) or type(e).__name__
            return StepOutcome(
                output={
                    "context": "",
                    "error": RETRIEVAL_ERROR,
                    "message": message,
                },
                status=StepStatus.ERROR,
                error_message=message,
            )


class LLMEngineComponent(Component):
    """Asks the configured language model to answer the query."""

    kind = ComponentKind.LLM_ENGINE

    def __init__(
        self,
        model_client: ModelClient,
        default_provider: str = DEFAULT_PROVIDER,
        default_model: str = DEFAULT_MODEL,
        default_temperature: float = DEFAULT_TEMPERATURE,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    ):
        self.model_client = model_client
        self.default_provider = default_provider
        self.default_model = default_model
        self.default_temperature = default_temperature
        self.default_system_prompt = default_system_prompt

    @staticmethod
    def build_prompt(query: str, knowledge_context: str) -> str:
        """Prepend the knowledge base context to the question when there is one."""
        if not knowledge_context:
            return query
        return (
            f"Context from knowledge base:\n{knowledge_context}\n\n"
            f"User question: {query}\n\n"
            "Please answer the question based on the provided context."
        )

    def run(self, node: WorkflowNode, context: ExecutionContext) -> StepOutcome:
        config = node.config
        # Falsy settings fall back to the defaults, a temperature of 0 included
        provider = config.get("provider") or self.default_provider
        model = config.get("model") or self.default_model
        system_prompt = config.get("systemPrompt") or self.default_system_prompt

        query = context.current_value("query") or context.user_query
        knowledge_context = context.current_value("context") or ""
        prompt = self.build_prompt(query, knowledge_context)

        try:
            temperature = float(config.get("temperature") or self.default_temperature)
            response = self.model_client.call_model(provider, model, system_prompt, prompt, temperature)
        except Exception as e:
            logger.error(f"LLM call to {provider}/{model} failed: {str(e)}")
            message = str(e) or type(e).__name__
            return StepOutcome(
                output={
                    "response": LLM_APOLOGY,
                    "error": LLM_ERROR,
                    "message": message,
                },
                status=StepStatus.ERROR,
                error_message=message,
            )

        return StepOutcome(output={
            "response": response,
            "model": model,
            "provider": provider,
            "prompt": prompt,
            "hasContext": bool(knowledge_context),
            "contextLength": len(knowledge_context),
        })


class OutputComponent(Component):
    """Formats the final answer and summarizes the steps that produced it."""

    kind = ComponentKind.OUTPUT

    def run(self, node: WorkflowNode, context: ExecutionContext) -> StepOutcome:
        config = node.config
        show_timestamp = config.get("showTimestamp") is not False
        output_format = config.get("format") or DEFAULT_OUTPUT_FORMAT

        final_response = context.current_value("response") or NO_RESPONSE
        if show_timestamp:
            final_response += f"\n\n_Generated at {datetime.now().strftime('%H:%M:%S')}_"

        return StepOutcome(output={
            "finalResponse": final_response,
            "format": output_format,
            "executionSummary": {
                "totalSteps": context.step_count,
                "totalExecutionTime": context.total_execution_time(),
                "componentsUsed": context.components_used(),
            },
        })


def build_component_catalog(
    document_source: DocumentSource,
    model_client: ModelClient,
    config: Optional[Any] = None,
    matcher: Optional[DocumentMatcher] = None
) -> Dict[ComponentKind, Component]:
    """
    Build the handler for every component kind.

    Args:
        document_source: Provider of knowledge base documents
        model_client: Language model client used by LLM nodes
        config: Optional ``AppConfig`` supplying component defaults
        matcher: Optional document relevance strategy

    Returns:
        Mapping of component kind to its handler
    """
    llm_defaults: Dict[str, Any] = {}
    kb_limits: Dict[str, Any] = {}
    if config is not None:
        llm_defaults = {
            "default_provider": config.default_llm_provider,
            "default_model": config.default_llm_model,
            "default_temperature": config.default_temperature,
            "default_system_prompt": config.default_system_prompt,
        }
        kb_limits = {
            "max_documents": config.knowledge_base_max_documents,
            "snippet_length": config.knowledge_base_snippet_length,
        }

    components = [
        UserQueryComponent(),
        KnowledgeBaseComponent(document_source, matcher=matcher, **kb_limits),
        LLMEngineComponent(model_client, **llm_defaults),
        OutputComponent(),
    ]
    return {component.kind: component for component in components}
