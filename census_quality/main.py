import logging
from datetime import date

from fastapi import Depends, FastAPI, UploadFile, File, HTTPException
from fastapi.concurrency import run_in_threadpool
from .assistant import GeminiChatClient, SUMMARY_REQUEST, generate_chat_response
from .config import Settings, configure_logging, get_settings
from .models import AnalyzeResponse, ChatRequest, ChatResponse, HealthResponse
from .normalize import CensusReadError, decode_census_bytes, parse_census_text
from .rules import SUPPORTED_EXTENSIONS
from .scoring import analyze_census

logger = logging.getLogger(__name__)

READ_ERROR_DETAIL = "I encountered an error reading that file. Please ensure it is a valid CSV file."

configure_logging(get_settings().log_level)

app = FastAPI(
    title="census-quality",
    description="Deterministic census quality scoring for group life enrollment",
    version="0.1.0",
)


def get_chat_client(settings: Settings = Depends(get_settings)) -> GeminiChatClient:
    return GeminiChatClient.from_settings(settings)


def report_filename(today: date) -> str:
    return f"Census-Risk-Report-{today.isoformat()}.png"


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze_upload(
    file: UploadFile = File(...),
    client: GeminiChatClient = Depends(get_chat_client),
):
    filename = file.filename or ""
    if not filename.lower().endswith(SUPPORTED_EXTENSIONS):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")

    raw = await file.read()
    try:
        text = decode_census_bytes(raw)
    except CensusReadError as exc:
        logger.info("unreadable upload %s: %s", filename, exc)
        raise HTTPException(status_code=422, detail=READ_ERROR_DETAIL) from exc

    records = parse_census_text(text)
    result = analyze_census(records)
    logger.info(
        "analyzed %s: employees=%d score=%d risk=%s",
        filename, result.total_employees, result.overall_score, result.risk_level,
    )

    summary = await run_in_threadpool(generate_chat_response, client, [], SUMMARY_REQUEST, result)
    return AnalyzeResponse(
        filename=filename,
        analysis=result,
        summary=summary,
        report_filename=report_filename(date.today()),
    )


@app.post("/chat", response_model=ChatResponse)
def chat(request: ChatRequest, client: GeminiChatClient = Depends(get_chat_client)):
    reply = generate_chat_response(client, request.history, request.message, request.context)
    return ChatResponse(reply=reply)
