from contextlib import asynccontextmanager
from typing import Optional
from uuid import uuid4
import logging

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse

from .logging_config import configure_logging, request_id_var
from .question_service import QuestionService
from .settings import settings
from .routers import questions, reports

logger = logging.getLogger(__name__)


def create_app(question_service: Optional[QuestionService] = None) -> FastAPI:
	configure_logging(settings.log_level, settings.log_json)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		# Providers are resolved once here and injected into the routers via app.state
		service = question_service or QuestionService.from_settings(settings)
		app.state.question_service = service
		if service.clients:
			mode = "fallback" if service.fallback else "single-provider"
			logger.info("LLM providers: %s (%s mode)", ", ".join(service.provider_names), mode)
		else:
			logger.warning("No LLM API keys configured; /generate-questions will answer 500")
		yield
		await service.aclose()

	app = FastAPI(title="Lingua Quiz API", lifespan=lifespan)
	if question_service is not None:
		app.state.question_service = question_service
	app.include_router(questions.router)
	app.include_router(reports.router)

	@app.middleware("http")
	async def assign_request_id(request: Request, call_next):
		req_id = request.headers.get("X-Request-ID") or uuid4().hex
		token = request_id_var.set(req_id)
		try:
			response = await call_next(request)
		finally:
			request_id_var.reset(token)
		response.headers["X-Request-ID"] = req_id
		return response

	@app.get("/", include_in_schema=False)
	async def redirect_root_to_docs():
		return RedirectResponse(url="/docs")

	@app.get("/info")
	def info(request: Request):
		service: Optional[QuestionService] = getattr(request.app.state, "question_service", None)
		providers = service.provider_names if service else []
		return {
			"status": "ok",
			"providers": providers,
			"fallback": bool(service and service.fallback),
			"questions_per_band": settings.questions_per_band,
		}

	return app


app = create_app()
