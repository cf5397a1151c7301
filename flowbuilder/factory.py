"""Builds the FastAPI application and wires the engine to storage and providers."""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.endpoints import router, init_dependencies
from .config import AppConfig, load_config, validate_config
from .core.collaborators import ModelClient
from .core.execution_engine import ExecutionEngine
from .core.logging import get_logger, setup_logging
from .core.middleware import ErrorHandlingMiddleware
from .core.session_manager import SessionManager
from .core.workflow_manager import WorkflowManager
from .integrations.llm import ProviderModelClient
from .storage.database import create_tables, get_database_engine
from .storage.migrations import run_migrations

logger = get_logger(__name__)


def prepare_database(config: AppConfig) -> None:
    """Connect to the configured database and bring its schema up to date."""
    engine = get_database_engine(
        database_url=config.database_url,
        echo=config.database_echo,
        connect_args=config.get_database_connect_args()
    )
    create_tables(engine)
    try:
        run_migrations(engine)
    except Exception as e:
        # History indexes are an optimisation; serving without them is fine
        logger.warning(f"Storage migrations failed, continuing without them: {str(e)}")


def build_services(config: AppConfig, model_client: Optional[ModelClient] = None) -> ExecutionEngine:
    """
    Create the shared service objects and register them with the API router.

    The workflow manager doubles as the engine's document source and the
    session manager as its execution log.
    """
    workflow_manager = WorkflowManager()
    session_manager = SessionManager()
    execution_engine = ExecutionEngine(
        document_source=workflow_manager,
        model_client=model_client or ProviderModelClient.from_config(config),
        execution_log=session_manager,
        config=config
    )
    init_dependencies(
        workflow_manager=workflow_manager,
        session_manager=session_manager,
        execution_engine=execution_engine
    )
    return execution_engine


def create_app(config: Optional[AppConfig] = None, model_client: Optional[ModelClient] = None) -> FastAPI:
    """
    Create the flow builder application.

    Args:
        config: Settings to use; loaded from ``.env`` and the environment when omitted
        model_client: Replaces the provider client, e.g. with a fake in tests

    Raises:
        ConfigurationError: If the settings do not validate
    """
    config = config or load_config()
    validate_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(
            level=config.log_level.value,
            log_file=config.log_file,
            log_format=config.log_format,
            structured=config.structured_logging,
            max_size=config.log_max_size,
            backup_count=config.log_backup_count
        )
        logger.info(f"Starting {config.app_name} v{config.app_version}")

        prepare_database(config)
        app.state.execution_engine = build_services(config, model_client)
        logger.info("Flow builder ready")

        yield

        logger.info(f"Shutting down {config.app_name}")

    app = FastAPI(
        title=config.app_name,
        description="Runs visual workflows of UserQuery, KnowledgeBase, LLMEngine and Output components",
        version=config.app_version,
        debug=config.debug,
        lifespan=lifespan
    )
    app.state.config = config

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=config.cors_methods,
            allow_headers=["*"],
        )
    app.add_middleware(ErrorHandlingMiddleware)

    app.include_router(router)

    service_name = config.app_name.lower().replace(" ", "-")

    @app.get("/", tags=["health"])
    async def root():
        return {"message": f"{config.app_name} is running", "version": config.app_version}

    @app.get("/health", tags=["health"])
    async def health_check():
        return {"status": "healthy", "service": service_name, "version": config.app_version}

    return app
