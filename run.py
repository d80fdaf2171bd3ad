import uvicorn
from lumina.config.settings import settings
from lumina.main import app

if __name__ == "__main__":
    uvicorn.run(
        "lumina.main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        ws_ping_interval=settings.WEBSOCKET_PING_INTERVAL,
        ws_ping_timeout=settings.WEBSOCKET_PING_TIMEOUT
    )
