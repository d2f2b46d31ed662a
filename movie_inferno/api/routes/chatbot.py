from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from movie_inferno.core.database import DatabaseClient
from movie_inferno.deps import get_db
from movie_inferno.schemas.chatbot import ChatRequest, ChatResponse
from movie_inferno.services.chatbot_service import ChatbotService

router = APIRouter(tags=["chatbot"])


@router.post("/chatbot", response_model=ChatResponse)
async def chatbot(payload: ChatRequest, db: DatabaseClient = Depends(get_db)):
    return jsonable_encoder(ChatbotService(db).reply(payload.message or ""))
