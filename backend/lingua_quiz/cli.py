from __future__ import annotations
import asyncio
from pathlib import Path
from typing import List, Optional

import click

from .models import MAX_BAND, Language, Level, accuracy_percent
from .quiz.api_client import QuestionsAPI
from .quiz.controller import QuizController
from .quiz.machine import QuizMachine, QuizPhase, Screen
from .settings import settings


LEVEL_SUBTITLES = {
	Level.BASIC: "Basic - vocab, numbers and simple phrases.",
	Level.MODERATE: "Moderate - greetings and daily conversations.",
	Level.ADVANCED: "Advanced - elevator-pitch style answers in the target language.",
}


def _choose(label: str, choices: List[str], default: Optional[str] = None) -> str:
	return click.prompt(label, type=click.Choice(choices, case_sensitive=False), default=default, show_choices=True)


def _show_question(machine: QuizMachine) -> None:
	question = machine.current_question
	current, total = machine.progress
	correct, answered = machine.band_score
	click.echo("")
	click.secho(
		f"Band {machine.band} - question {current}/{total}   (score {correct}/{answered})", bold=True
	)
	click.echo(f"[{question.type.value} | {question.direction.value}]")
	click.echo(question.question)
	if question.options:
		for idx, option in enumerate(question.options, start=1):
			click.echo(f"  {idx}. {option}")


def _show_feedback(record) -> None:
	if record.correct:
		click.secho("Correct!", fg="green")
	else:
		click.secho(f"Not quite. Correct answer: {record.question.answer}", fg="red")
	if record.question.explanation:
		click.echo(record.question.explanation)


def _resolve_choice(text: str, options: Optional[List[str]]) -> str:
	if options and text.strip().isdigit():
		idx = int(text.strip()) - 1
		if 0 <= idx < len(options):
			return options[idx]
	return text


async def _quiz_step(machine: QuizMachine, controller: QuizController) -> bool:
	if machine.phase == QuizPhase.ERROR:
		click.secho("Could not load questions for this band.", fg="red")
		click.echo(f"Reason: {machine.error}")
		action = _choose("Action", ["retry", "level", "language", "quit"], default="retry")
		if action == "retry":
			click.echo("Loading questions...")
			await controller.retry()
		elif action == "level":
			machine.change_level()
		elif action == "language":
			machine.change_language()
		else:
			return False
		return True

	_show_question(machine)
	record = machine.current_record
	if record is None:
		hint = " (number or text, '<' for previous)" if machine.progress[0] > 1 else ""
		raw = click.prompt(f"Your answer{hint}", default="", show_default=False)
		if raw.strip() == "<" and machine.progress[0] > 1:
			machine.previous_question()
			return True
		record = machine.submit_answer(_resolve_choice(raw, machine.current_question.options))
		_show_feedback(record)
	else:
		click.echo(f"You answered: {record.submitted}")
		_show_feedback(record)
	move = click.prompt("Press Enter to continue ('<' for previous)", default="", show_default=False)
	if move.strip() == "<" and machine.progress[0] > 1:
		machine.previous_question()
	else:
		machine.next_question()
	return True


async def _report_step(machine: QuizMachine, controller: QuizController, learner: str, report_dir: Path) -> bool:
	report = machine.last_report
	click.echo("")
	click.secho(
		f"Band {report.band} complete: {report.score}/{report.total} ({report.accuracy}%)", bold=True
	)
	session_correct, session_total = machine.session_score
	click.echo(
		f"Session: {session_correct}/{session_total} ({accuracy_percent(session_correct, session_total)}%) "
		f"across {len(machine.history)} band(s)"
	)
	actions = ["retry", "level", "language", "export", "reset", "quit"]
	if report.band < MAX_BAND:
		actions.insert(1, "next")
	action = _choose("Action", actions, default="next" if "next" in actions else "retry")
	if action in ("retry", "next"):
		click.echo("Loading questions...")
		await (controller.retry() if action == "retry" else controller.next_band())
	elif action == "level":
		machine.change_level()
	elif action == "language":
		machine.change_language()
	elif action == "export":
		rendered = controller.export_report(learner)
		report_dir.mkdir(parents=True, exist_ok=True)
		path = report_dir / rendered.filename
		path.write_bytes(rendered.content)
		click.echo(f"Report written to {path} ({rendered.page_count} page(s))")
	elif action == "reset":
		machine.reset()
	else:
		return False
	return True


async def run_quiz(api: QuestionsAPI, learner: str, report_dir: Path, timeout: Optional[float] = None) -> QuizMachine:
	machine = QuizMachine(settings.questions_per_band)
	controller = QuizController(machine, api, timeout=timeout)
	running = True
	while running:
		screen = machine.screen
		if screen == Screen.WELCOME:
			click.secho("Lingua Quiz", bold=True)
			if not click.confirm("Start a new session?", default=True):
				break
			machine.start()
		elif screen == Screen.LANGUAGE_SELECT:
			language = _choose("Language", [lang.value for lang in Language])
			machine.select_language(Language(language))
		elif screen == Screen.LEVEL_SELECT:
			for subtitle in LEVEL_SUBTITLES.values():
				click.echo(f"  {subtitle}")
			level = _choose("Level", [lvl.value for lvl in Level])
			machine.select_level(Level(level))
		elif screen == Screen.BAND_SELECT:
			band = click.prompt("Band", type=click.IntRange(1, MAX_BAND), default=1)
			click.echo("Loading questions...")
			await controller.begin_band(band)
		elif screen == Screen.QUIZ:
			running = await _quiz_step(machine, controller)
		elif screen == Screen.REPORT:
			running = await _report_step(machine, controller, learner, report_dir)
	return machine


async def _play(server: str, learner: str, report_dir: Path, timeout: float) -> None:
	async with QuestionsAPI(server, timeout=timeout) as api:
		await run_quiz(api, learner, report_dir, timeout=timeout)


@click.group()
def cli() -> None:
	"""Lingua Quiz: LLM-generated language quizzes."""


@cli.command("play")
@click.option("--server", default=lambda: settings.server_url, show_default="LINGUA_QUIZ_SERVER_URL", help="Question server URL.")
@click.option("--learner", default="Learner", show_default=True, help="Name printed on exported reports.")
@click.option("--report-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("."), help="Where exported PDFs go.")
@click.option("--timeout", type=float, default=lambda: settings.client_timeout_seconds, help="Seconds to wait for a question batch.")
def play(server: str, learner: str, report_dir: Path, timeout: float) -> None:
	"""Take a quiz in the terminal."""
	asyncio.run(_play(server, learner, report_dir, timeout))


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=8000, show_default=True)
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes.")
def serve(host: str, port: int, reload: bool) -> None:
	"""Run the question server."""
	import uvicorn

	uvicorn.run("lingua_quiz.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
	cli()
