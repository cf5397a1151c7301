"""Main FastAPI application for the flow builder service."""

from .factory import create_app

# Settings come from ./.env and the environment
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, **app.state.config.get_uvicorn_config())
