"""FastAPI application serving versioned message status documents."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from docstore.clients.store.StoreClientManager import StoreClientManager
from docstore.documents.MessageStatusModel import MessageStatusModel
from docstore.helper.HelperConfig import HelperConfig
from docstore.logging.logging_setup import setup_logging
from docstore.models.message_status import MESSAGE_STATUS_COLLECTION_NAME, MESSAGE_STATUS_MODEL_PK_FIELD
from server.api.routers.MessageStatusRouter import message_status_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Boots the store client and binds the models for the lifetime of the app."""
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    store_client = StoreClientManager(helper_config=app.state.helper_config).get_client()
    await store_client.boot()
    try:
        await store_client.do_healthcheck()
        status_container = store_client.get_container(
            MESSAGE_STATUS_COLLECTION_NAME, partition_key_path=f"/{MESSAGE_STATUS_MODEL_PK_FIELD}"
        )
        app.state.message_status_model = MessageStatusModel(
            helper_config=app.state.helper_config, container=status_container
        )
        logging.info("Serving message status on the %s store.", store_client.get_engine_name(), color="green")
        yield
    finally:
        await store_client.close()
        logging.info("Store client closed.")


app = FastAPI(
    title="Docstore",
    description="Versioned message status documents on a partitioned document store.",
    version=app_version,
    lifespan=lifespan,
)
app.include_router(message_status_router)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("API_SERVER_PORT", "8000"))
    logging.info("Docstore API v%s listening on port %d", app_version, port)
    uvicorn.run(app, host="0.0.0.0", port=port)
