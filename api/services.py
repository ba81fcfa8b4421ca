"""
Service initialization and dependency injection for the order support API.

Creates and manages all service instances used by the API. Collaborators
passed to the constructor (fakes in tests) take precedence over the ones
built from settings.
"""

import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from api.handoff.manager import EscalationPolicy
from behavior import BehaviorEventLog, EngagementTracker, ProactivePromptGenerator
from llm.orchestrator import ChatOrchestrator
from llm.providers import BedrockProvider, OpenAIProvider, ReplyProvider, UnavailableProvider
from orders import OrderContextResolver, OrderStatusClient, RecommendationEngine
from orders.status_client import OrderStatusProvider
from retrieval.embedder import Embedder, EmbeddingService, EmbeddingConfig, EmbeddingProvider
from retrieval.knowledge import KnowledgeRetriever
from retrieval.pinecone_client import PineconeClient, PineconeConfig

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(
        self,
        reply_provider: Optional[ReplyProvider] = None,
        embedder: Optional[Embedder] = None,
        order_status_provider: Optional[OrderStatusProvider] = None,
        pinecone_client: Optional[PineconeClient] = None,
    ):
        self.settings: Optional[Settings] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.reply_provider = reply_provider
        self.embedder = embedder
        self.order_status_provider = order_status_provider
        self.pinecone_client = pinecone_client
        self.orchestrator: Optional[ChatOrchestrator] = None
        self.event_log: Optional[BehaviorEventLog] = None
        self.prompt_generator: Optional[ProactivePromptGenerator] = None
        self.engagement_tracker: Optional[EngagementTracker] = None
        self._initialized = False

    def initialize(self, settings: Settings, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = settings
        self.session_factory = session_factory
        logger.info(f"Initializing services with provider: {settings.llm_provider}")

        self._init_reply_provider()
        self._init_embedding()
        self._init_pinecone()
        self._init_order_status()
        self._init_orchestrator()
        self._init_behavior()
        self._initialized = True
        logger.info("All services initialized successfully")

    def _init_reply_provider(self):
        """Initialize the generative reply provider."""
        if self.reply_provider is not None:
            return
        s = self.settings

        try:
            if s.is_bedrock:
                self.reply_provider = BedrockProvider(
                    model_id=s.bedrock_llm_model_id,
                    region=s.aws_region,
                    max_tokens=s.max_tokens,
                    temperature=s.temperature,
                    timeout=s.generation_timeout_seconds,
                )
            elif s.openai_api_key:
                self.reply_provider = OpenAIProvider(
                    api_key=s.openai_api_key,
                    model_id=s.openai_llm_model,
                    base_url=s.openai_base_url,
                    max_tokens=s.max_tokens,
                    temperature=s.temperature,
                    timeout=s.generation_timeout_seconds,
                )
            else:
                logger.warning("OPENAI_API_KEY not set, replies will use heuristic fallbacks")
                self.reply_provider = UnavailableProvider("OPENAI_API_KEY not set")
        except Exception as e:
            # Keep serving with heuristic replies
            logger.error(f"Reply provider initialization failed: {e}")
            self.reply_provider = UnavailableProvider(str(e))

    def _init_embedding(self):
        """Initialize embedding service."""
        if self.embedder is not None:
            return
        s = self.settings

        if s.is_bedrock:
            provider = EmbeddingProvider.BEDROCK_TITAN
        elif s.openai_api_key:
            provider = EmbeddingProvider.OPENAI
        else:
            logger.warning("No embedding provider configured, FAQ retrieval disabled")
            return

        config = EmbeddingConfig(
            provider=provider,
            model_id=s.embed_model_id,
            aws_region=s.aws_region,
            openai_api_key=s.openai_api_key,
            openai_base_url=s.openai_base_url,
            timeout=s.embedding_timeout_seconds,
        )
        try:
            self.embedder = EmbeddingService(config, cache_size=s.embedding_cache_size)
            logger.info(f"Embedding service ready: {provider.value}")
        except Exception as e:
            logger.error(f"Embedding service initialization failed: {e}")

    def _init_pinecone(self):
        """Initialize Pinecone client."""
        if self.pinecone_client is not None:
            return
        s = self.settings

        if not s.pinecone_api_key:
            logger.info("PINECONE_API_KEY not set, FAQ matching uses the datastore")
            return

        try:
            self.pinecone_client = PineconeClient(PineconeConfig(
                api_key=s.pinecone_api_key,
                index_name=s.pinecone_index_name,
                namespace=s.pinecone_namespace,
            ))
        except Exception as e:
            logger.error(f"Pinecone initialization failed, using datastore: {e}")

    def _init_order_status(self):
        if self.order_status_provider is None:
            self.order_status_provider = OrderStatusClient(
                base_url=self.settings.order_status_url,
                timeout=self.settings.order_status_timeout_seconds,
            )

    def _init_orchestrator(self):
        """Initialize the chat orchestrator."""
        s = self.settings

        self.orchestrator = ChatOrchestrator(
            session_factory=self.session_factory,
            reply_provider=self.reply_provider,
            order_resolver=OrderContextResolver(
                session_factory=self.session_factory,
                status_provider=self.order_status_provider,
            ),
            escalation_policy=EscalationPolicy(),
            knowledge_retriever=KnowledgeRetriever(
                embedder=self.embedder,
                timeout=s.embedding_timeout_seconds,
                pinecone_client=self.pinecone_client,
                min_similarity=s.faq_min_similarity,
                session_factory=self.session_factory,
            ),
            recommendation_engine=RecommendationEngine(),
            generation_timeout=s.generation_timeout_seconds,
        )
        logger.info("Chat orchestrator ready")

    def _init_behavior(self):
        """Initialize the behaviour engine."""
        s = self.settings

        self.event_log = BehaviorEventLog(
            session_factory=self.session_factory,
            window_minutes=s.behavior_window_minutes,
            event_limit=s.behavior_event_limit,
        )
        self.prompt_generator = ProactivePromptGenerator(
            session_factory=self.session_factory,
            reply_provider=self.reply_provider,
            event_log=self.event_log,
            generation_timeout=s.generation_timeout_seconds,
            dedupe=s.prompt_dedupe,
        )
        self.engagement_tracker = EngagementTracker(self.session_factory)
        logger.info("Behaviour engine ready")

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.orchestrator is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "llm": not isinstance(self.reply_provider, UnavailableProvider) and self.reply_provider is not None,
            "embedding": self.embedder is not None,
            "pinecone": self.pinecone_client is not None,
            "orchestrator": self.orchestrator is not None,
            "behavior": self.prompt_generator is not None,
        }


# Default instance for the module-level app
_services = Services()


def get_default_services() -> Services:
    return _services


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the app's services."""
    return request.app.state.services
