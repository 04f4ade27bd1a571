from __future__ import annotations
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

from ..models import ReportExportRequest
from ..report import render_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/export")
def export_report(req: ReportExportRequest):
	if not req.history:
		return JSONResponse(status_code=400, content={"error": "No completed bands to export yet"})
	rendered = render_report(req.history, learner=req.learner, language=req.language, level=req.level)
	logger.info("Exported %d band(s) for %s into %d page(s)", len(req.history), req.learner, rendered.page_count)
	return Response(
		content=rendered.content,
		media_type="application/pdf",
		headers={"Content-Disposition": f'attachment; filename="{rendered.filename}"'},
	)
