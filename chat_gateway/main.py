# chat_gateway/main.py
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from chat_gateway.config import Settings
from chat_gateway.errors import MalformedRequest
from chat_gateway.services.gateway import ChatGateway, error_response
from chat_gateway.services.provider import GeminiStreamingProvider

settings = Settings()

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

# --- FastAPI App Initialization ---
app = FastAPI(title="SecondOrder Chat Gateway")

# --- CORS Configuration ---
# Allows the marketing site's chat demo to call this backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Gateway (built once, shared by every request) ---
_gateway: Optional[ChatGateway] = None


def get_gateway() -> ChatGateway:
    global _gateway
    if _gateway is None:
        _gateway = ChatGateway(settings, GeminiStreamingProvider(settings))
    return _gateway


# --- Server Startup Event ---
@app.on_event("startup")
async def startup_event():
    # Fails fast when GOOGLE_API_KEY is missing
    get_gateway()
    logger.info(
        f"Chat gateway ready: model={settings.model_name} protocol={settings.stream_protocol} "
        f"max_message_length={settings.max_message_length} "
        f"require_non_empty={settings.require_non_empty} strict_parts={settings.strict_parts}"
    )


# --- API Endpoints ---
@app.get("/")
def read_root():
    return {"Hello": "Welcome to the SecondOrder Chat Gateway"}


@app.get("/healthz")
def healthz():
    return {"ok": True, "stream_protocol": settings.stream_protocol}


@app.post("/api/chat")
async def chat_handler(request: Request, gateway: ChatGateway = Depends(get_gateway)):
    """
    Streams the assistant's reply to a conversation posted as {"messages": [...]}.
    The body is read raw so that shape errors answer 400 {"error": ...}.
    """
    try:
        body = await request.json()
    except ValueError:
        return error_response(MalformedRequest("Invalid request: body must be valid JSON"))
    return await gateway.handle(body)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
