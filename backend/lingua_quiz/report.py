"""
Session report export.

Renders every BandReport accumulated in a session into a paginated A4 PDF:
title, learner, language/level/date header, aggregate score, then one
section per band with a block per answered question. Blocks are never split
across pages unless a single block is taller than a whole page, and every
page carries the generation timestamp in its footer.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .models import BandReport, Language, Level, accuracy_percent

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 18 * mm
FOOTER_SPACE = 14 * mm
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
BLOCK_GAP = 6

# (text, font, size, indent) runs drawn top to bottom
Line = Tuple[str, str, float, float]


@dataclass
class RenderedReport:
	content: bytes
	page_count: int
	filename: str


def report_filename(language: Language, level: Level, generated_at: datetime) -> str:
	return f"lingua-quiz-report-{language.value.lower()}-{level.value.lower()}-{generated_at.strftime('%Y%m%d-%H%M%S')}.pdf"


class _PdfWriter:
	def __init__(self, buffer: io.BytesIO, footer_text: str, title: str, author: str) -> None:
		self.canvas = canvas.Canvas(buffer, pagesize=A4)
		self.canvas.setTitle(title)
		self.canvas.setAuthor(author)
		self.footer_text = footer_text
		self.page_count = 1
		self.y = PAGE_HEIGHT - MARGIN

	@property
	def remaining(self) -> float:
		return self.y - (MARGIN + FOOTER_SPACE)

	def _draw_footer(self) -> None:
		c = self.canvas
		c.setFont("Helvetica", 8)
		c.setFillGray(0.4)
		c.drawString(MARGIN, MARGIN, self.footer_text)
		c.drawRightString(PAGE_WIDTH - MARGIN, MARGIN, f"Page {self.page_count}")
		c.setFillGray(0)

	def new_page(self) -> None:
		self._draw_footer()
		self.canvas.showPage()
		self.page_count += 1
		self.y = PAGE_HEIGHT - MARGIN

	def wrap(self, text: str, font: str, size: float, indent: float = 0) -> List[Line]:
		return [(line, font, size, indent) for line in simpleSplit(text, font, size, CONTENT_WIDTH - indent) or [""]]

	def _draw_line(self, line: Line) -> None:
		text, font, size, indent = line
		self.canvas.setFont(font, size)
		self.y -= size * 1.35
		self.canvas.drawString(MARGIN + indent, self.y, text)

	def block(self, lines: Sequence[Line]) -> None:
		height = sum(line[2] * 1.35 for line in lines) + BLOCK_GAP
		if height > self.remaining:
			self.new_page()
		if height > self.remaining:
			# Taller than a page: fall back to line-by-line breaks
			for line in lines:
				if line[2] * 1.35 > self.remaining:
					self.new_page()
				self._draw_line(line)
		else:
			for line in lines:
				self._draw_line(line)
		self.y -= BLOCK_GAP

	def finish(self) -> None:
		self._draw_footer()
		self.canvas.save()


def session_levels(history: Sequence[BandReport], current: Level) -> List[Level]:
	"""Levels played in the session in first-played order; the current level when nothing was played."""
	levels: List[Level] = []
	for report in history:
		if report.level not in levels:
			levels.append(report.level)
	return levels or [current]


def _question_block(writer: _PdfWriter, number: int, record) -> List[Line]:
	q = record.question
	mark = "Correct" if record.correct else "Incorrect"
	lines: List[Line] = []
	lines += writer.wrap(f"{number}. {q.question}", "Helvetica-Bold", 10, indent=6)
	lines += writer.wrap(f"Your answer: {record.submitted or '(no answer)'}  [{mark}]", "Helvetica", 10, indent=6)
	if not record.correct:
		lines += writer.wrap(f"Correct answer: {q.answer}", "Helvetica", 10, indent=6)
	if q.explanation:
		lines += writer.wrap(f"Explanation: {q.explanation}", "Helvetica-Oblique", 9, indent=6)
	return lines


def render_report(
	history: Sequence[BandReport],
	*,
	learner: str,
	language: Language,
	level: Level,
	generated_at: Optional[datetime] = None,
) -> RenderedReport:
	generated_at = generated_at or datetime.now()
	buffer = io.BytesIO()
	title = "Lingua Quiz - Session Report"
	writer = _PdfWriter(
		buffer,
		footer_text=f"Generated {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
		title=title,
		author=learner,
	)

	levels = session_levels(history, level)
	levels_label = ("Levels: " if len(levels) > 1 else "Level: ") + ", ".join(lvl.value for lvl in levels)
	total_score = sum(r.score for r in history)
	total_questions = sum(r.total for r in history)
	writer.block(writer.wrap(title, "Helvetica-Bold", 18))
	writer.block(
		writer.wrap(f"Learner: {learner}", "Helvetica", 11)
		+ writer.wrap(
			f"Language: {language.value}   {levels_label}   Date: {generated_at.strftime('%Y-%m-%d')}",
			"Helvetica",
			11,
		)
	)
	writer.block(
		writer.wrap(
			f"Overall score: {total_score} / {total_questions}   Accuracy: {accuracy_percent(total_score, total_questions)}%",
			"Helvetica-Bold",
			12,
		)
		+ writer.wrap(f"Bands completed: {len(history)}", "Helvetica", 10)
	)

	for report in history:
		header = writer.wrap(
			f"Band {report.band} - {report.level.value} ({report.language.value})", "Helvetica-Bold", 13
		) + writer.wrap(f"Score: {report.score} / {report.total}   Accuracy: {report.accuracy}%", "Helvetica", 10)
		if report.records:
			# Keep the band header together with its first question
			header += _question_block(writer, 1, report.records[0])
			writer.block(header)
			for number, record in enumerate(report.records[1:], start=2):
				writer.block(_question_block(writer, number, record))
		else:
			writer.block(header)

	writer.finish()
	return RenderedReport(
		content=buffer.getvalue(),
		page_count=writer.page_count,
		filename=report_filename(language, level, generated_at),
	)


def build_report_pdf(
	history: Sequence[BandReport],
	*,
	learner: str,
	language: Language,
	level: Level,
	generated_at: Optional[datetime] = None,
) -> bytes:
	return render_report(history, learner=learner, language=language, level=level, generated_at=generated_at).content
