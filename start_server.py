import uvicorn
from dotenv import load_dotenv

load_dotenv()

from app.core.config import get_settings  # noqa: E402

if __name__ == '__main__':
    settings = get_settings()
    # uvicorn stops accepting on SIGINT/SIGTERM, then waits up to
    # timeout_graceful_shutdown seconds for in-flight requests
    uvicorn.run(
        app='app.main:app',
        host=settings.host,
        port=settings.port,
        reload=settings.environment == 'development',
        timeout_graceful_shutdown=settings.shutdown_timeout,
        )
