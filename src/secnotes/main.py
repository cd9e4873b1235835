from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from secnotes.middleware import RateLimit
from secnotes.routers import get_routers
from secnotes.shared import Logger, load_config

logger = Logger(__name__).get_logger()

config = load_config()


# ================================================================================
#       FastAPI Setup
# ================================================================================
app = FastAPI(title="secnotes")

for router in get_routers():
    app.include_router(router)

origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RateLimit)


# ================================================================================
#       Command Line
# ================================================================================
def welcome():
    # Log server banner
    for line in config.general.title.split("\n"):
        logger.info(line)

    logger.info("Starting encrypted record server")


def main(argv=None):
    welcome()

    import uvicorn

    uvicorn.run(
        "secnotes.main:app",
        host=config.network.host,
        port=config.network.port,
        reload=config.network.reload,
    )


if __name__ == "__main__":
    main()
