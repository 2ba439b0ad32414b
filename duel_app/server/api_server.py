"""FastAPI server that exposes the duel arena to a browser."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, field_validator
import uvicorn

from duel_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from duel_app.constants.duel_constants import (
    GAME_OVER_LOSS_TEXT,
    GAME_OVER_LOSS_TITLE,
    GAME_OVER_WIN_TEXT,
    GAME_OVER_WIN_TITLE,
    MAX_HEALTH,
    RANDOM_MIX,
    TOPICS,
)
from duel_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from duel_app.core.duel_controller import DuelController, MatchSnapshot
from duel_app.core.errors import NoActiveMatchError
from duel_app.core.markdown_renderer import renderer
from duel_app.core.models import Contestant, Difficulty, LogEntry, MatchConfig, RoundStatus

_ARENA_PAGE_HTML = """<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>CodeDuel</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      :root { font-family: 'JetBrains Mono', ui-monospace, monospace; background: #05070d; color: #e2e8f0; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; }
      .card { background: #0d1424; border-radius: 0.75rem; padding: 1.5rem; border: 1px solid rgba(0, 243, 255, 0.2); }
      .hidden { display: none; }
      .primary-button { border: 1px solid #00f3ff; border-radius: 0.5rem; padding: 0.85rem 1.5rem; font-size: 1rem; background: transparent; color: #00f3ff; cursor: pointer; }
      .primary-button:hover { background: #00f3ff; color: #05070d; }
      .hud { display: flex; justify-content: space-between; align-items: center; }
      .hearts { color: #ff2a6d; letter-spacing: 0.2rem; }
      .score { font-size: 1.4rem; }
      .progress-track { width: 100%; height: 0.35rem; background: #111827; }
      #progress-fill { height: 100%; width: 0; background: #00f3ff; transition: width 100ms linear; }
      #progress-label { font-size: 0.7rem; color: #00f3ff; text-align: right; }
      pre { background: #000; padding: 1rem; border-radius: 0.5rem; overflow-x: auto; }
      .options-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(220px, 1fr)); gap: 0.75rem; }
      .option-button { text-align: left; border: 1px solid #1f2937; border-radius: 0.5rem; padding: 1rem; background: #0b1120; color: #e2e8f0; cursor: pointer; font-family: inherit; }
      .option-button:hover { border-color: #00f3ff; }
      #answer-input { width: 100%; box-sizing: border-box; padding: 0.85rem; background: #0b1120; border: 1px solid #1f2937; color: #fff; font-family: inherit; font-size: 1rem; }
      .result-player { border-color: #22c55e; }
      .result-ai { border-color: #ef4444; }
      .log { max-height: 14rem; overflow-y: auto; font-size: 0.8rem; }
      .log-success { color: #4ade80; }
      .log-damage { color: #f87171; }
      .log-ai { color: #00f3ff; }
      .log-info { color: #9ca3af; }
    </style>
  </head>
  <body>
    <section class=\"card\" id=\"lobby-card\">
      <h1>CodeDuel</h1>
      <p>Answer before the AI finishes compiling.</p>
      <p>
        <select id=\"difficulty-select\">
          <option>Novice</option><option>Intermediate</option><option>Expert</option>
        </select>
        <select id=\"topic-select\"></select>
      </p>
      <button id=\"start-button\" class=\"primary-button\">Initialize Battle</button>
    </section>
    <section class=\"card hidden\" id=\"arena-card\">
      <div class=\"hud\">
        <div><span id=\"player-avatar\"></span> <span id=\"player-hearts\" class=\"hearts\"></span><div id=\"player-score\" class=\"score\"></div></div>
        <div id=\"match-label\"></div>
        <div style=\"text-align:right\"><span id=\"ai-hearts\" class=\"hearts\"></span> <span id=\"ai-avatar\"></span><div id=\"ai-score\" class=\"score\"></div></div>
      </div>
      <div class=\"progress-track\"><div id=\"progress-fill\"></div></div>
      <div id=\"progress-label\"></div>
      <div id=\"challenge\"></div>
      <div id=\"result\" class=\"card hidden\"></div>
      <div id=\"input-area\"></div>
      <button id=\"next-button\" class=\"primary-button hidden\">Next Round</button>
    </section>
    <section class=\"card hidden\" id=\"game-over-card\">
      <h1 id=\"game-over-title\"></h1>
      <p id=\"game-over-text\"></p>
      <p id=\"final-scores\"></p>
      <button id=\"exit-button\" class=\"primary-button\">Return to Lobby</button>
    </section>
    <section class=\"card\"><h3>System Logs</h3><div id=\"log\" class=\"log\"></div></section>
    <script>
      const lobbyCard = document.getElementById('lobby-card');
      const arenaCard = document.getElementById('arena-card');
      const gameOverCard = document.getElementById('game-over-card');
      const challengeEl = document.getElementById('challenge');
      const resultEl = document.getElementById('result');
      const inputArea = document.getElementById('input-area');
      const nextButton = document.getElementById('next-button');
      const logEl = document.getElementById('log');
      let renderedChallengeId = null;
      let renderedStatus = null;

      function setVisibility(element, isVisible) {
        if (isVisible) {
          element.classList.remove('hidden');
        } else {
          element.classList.add('hidden');
        }
      }

      function escapeHtml(text) {
        const span = document.createElement('span');
        span.textContent = text;
        return span.innerHTML;
      }

      async function post(path, body) {
        const response = await fetch(path, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify(body ?? {})
        });
        return response.ok;
      }

      async function loadTopics() {
        const response = await fetch('/topics');
        const payload = await response.json();
        const select = document.getElementById('topic-select');
        payload.topics.forEach(topic => {
          const option = document.createElement('option');
          option.textContent = topic;
          select.appendChild(option);
        });
      }

      function renderHud(state) {
        const hearts = health => '\\u2665'.repeat(health) + '\\u2661'.repeat(state.max_health - health);
        document.getElementById('player-avatar').textContent = state.player.avatar;
        document.getElementById('player-hearts').textContent = hearts(state.player.health);
        document.getElementById('player-score').textContent = String(state.player.score).padStart(6, '0');
        document.getElementById('ai-avatar').textContent = state.opponent.avatar;
        document.getElementById('ai-hearts').textContent = hearts(state.opponent.health);
        document.getElementById('ai-score').textContent = String(state.opponent.score).padStart(6, '0');
        document.getElementById('match-label').textContent = `VS MODE: ${state.difficulty.toUpperCase()} | ${state.topic}`;
        document.getElementById('progress-fill').style.width = `${state.progress}%`;
        document.getElementById('progress-label').textContent = `AI COMPILING... ${Math.floor(state.progress)}%`;
      }

      function renderInput(challenge) {
        inputArea.innerHTML = '';
        if (challenge.kind === 'MULTIPLE_CHOICE') {
          const grid = document.createElement('div');
          grid.className = 'options-grid';
          challenge.options.forEach((option, index) => {
            const button = document.createElement('button');
            button.className = 'option-button';
            button.textContent = `${String.fromCharCode(65 + index)}. ${option}`;
            button.addEventListener('click', () => post('/select', { option_index: index }).then(refresh));
            grid.appendChild(button);
          });
          inputArea.appendChild(grid);
          return;
        }
        const input = document.createElement('input');
        input.id = 'answer-input';
        input.placeholder = 'Type answer here...';
        input.addEventListener('keydown', event => {
          if (event.key === 'Enter') {
            post('/answer', { answer: input.value }).then(refresh);
          }
        });
        inputArea.appendChild(input);
        input.focus();
      }

      function renderState(state) {
        setVisibility(lobbyCard, !state.active);
        if (!state.active) {
          setVisibility(arenaCard, false);
          setVisibility(gameOverCard, false);
          return;
        }
        const gameOver = state.status === 'GAME_OVER';
        setVisibility(arenaCard, !gameOver);
        setVisibility(gameOverCard, gameOver);
        renderHud(state);
        logEl.innerHTML = state.log.map(entry => `<div class=\"log-${entry.category}\">${escapeHtml(entry.message)}</div>`).join('');

        if (gameOver) {
          document.getElementById('game-over-title').textContent = state.game_over.title;
          document.getElementById('game-over-text').textContent = state.game_over.text;
          document.getElementById('final-scores').textContent = `USER SCORE ${state.player.score} | AI SCORE ${state.opponent.score}`;
          return;
        }
        if (state.loading) {
          challengeEl.innerHTML = '<p>GENERATING VIRTUAL CHALLENGE...</p>';
          inputArea.innerHTML = '';
          renderedChallengeId = null;
        } else if (state.challenge.id !== renderedChallengeId || state.status !== renderedStatus) {
          challengeEl.innerHTML = `<h2>${escapeHtml(state.challenge.topic)}</h2>${state.challenge.question_html}${state.challenge.code_html}`;
          if (state.status === 'PLAYING') {
            renderInput(state.challenge);
          } else {
            inputArea.innerHTML = '';
          }
          renderedChallengeId = state.challenge.id;
        }
        renderedStatus = state.status;
        const resolved = state.status === 'RESULT' && state.result;
        setVisibility(resultEl, resolved);
        setVisibility(nextButton, resolved);
        if (resolved) {
          resultEl.className = `card result-${state.result.winner}`;
          resultEl.innerHTML = `<h3>${state.result.message}</h3><p>Correct Answer: <code>${escapeHtml(state.result.correct_answer)}</code></p>${state.result.explanation_html}`;
        }
      }

      async function refresh() {
        try {
          const response = await fetch('/state');
          renderState(await response.json());
        } catch (error) {
          console.warn('Unable to refresh arena state', error);
        }
      }

      document.getElementById('start-button').addEventListener('click', () => {
        post('/match', {
          difficulty: document.getElementById('difficulty-select').value,
          topic: document.getElementById('topic-select').value
        }).then(refresh);
      });
      nextButton.addEventListener('click', () => post('/next').then(refresh));
      document.getElementById('exit-button').addEventListener('click', () => post('/exit').then(refresh));

      loadTopics();
      refresh();
      setInterval(refresh, 250);
    </script>
  </body>
</html>"""


class MatchPayload(BaseModel):
    """Payload schema for starting a match from the lobby."""

    difficulty: Difficulty
    topic: str = RANDOM_MIX

    @field_validator("topic")
    @classmethod
    def _known_topic(cls, topic: str) -> str:
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic {topic!r}.")
        return topic


class AnswerPayload(BaseModel):
    """Payload schema for a typed answer."""

    answer: str


class SelectPayload(BaseModel):
    """Payload schema for a multiple-choice selection."""

    option_index: int


def _contestant_to_dict(contestant: Contestant) -> dict[str, object]:
    return {
        "name": contestant.name,
        "avatar": contestant.avatar,
        "is_ai": contestant.is_ai,
        "score": contestant.score,
        "health": contestant.health,
    }


def _log_entry_to_dict(entry: LogEntry) -> dict[str, object]:
    return {
        "message": entry.message,
        "category": entry.category.value,
        "timestamp": entry.timestamp.isoformat(),
    }


def serialize_snapshot(snapshot: MatchSnapshot) -> dict[str, object]:
    """Convert a snapshot into the JSON document polled by the arena page."""
    challenge_payload = None
    if snapshot.challenge is not None:
        challenge = snapshot.challenge
        # Hide the answer until the round has been resolved.
        revealed = snapshot.status is not RoundStatus.PLAYING
        challenge_payload = {
            "id": challenge.id,
            "topic": challenge.topic,
            "kind": challenge.kind.value,
            "question": challenge.question,
            "question_html": renderer.render_fragment(challenge.question),
            "code_snippet": challenge.code_snippet,
            "code_html": renderer.render_code(challenge.code_snippet) if challenge.code_snippet else "",
            "options": list(challenge.options),
            "correct_answer": challenge.correct_answer if revealed else None,
        }

    result_payload = None
    if snapshot.result is not None:
        result = snapshot.result
        result_payload = {
            "winner": result.winner.value,
            "outcome": result.outcome.value,
            "message": result.message,
            "correct_answer": result.correct_answer,
            "explanation": result.explanation,
            "explanation_html": renderer.render_fragment(result.explanation),
        }

    game_over_payload = None
    if snapshot.status is RoundStatus.GAME_OVER:
        game_over_payload = {
            "is_win": snapshot.is_win,
            "title": GAME_OVER_WIN_TITLE if snapshot.is_win else GAME_OVER_LOSS_TITLE,
            "text": GAME_OVER_WIN_TEXT if snapshot.is_win else GAME_OVER_LOSS_TEXT,
        }

    return {
        "active": True,
        "status": snapshot.status.value,
        "round_number": snapshot.round_number,
        "loading": snapshot.loading,
        "difficulty": snapshot.config.difficulty.value,
        "topic": snapshot.config.topic,
        "max_health": MAX_HEALTH,
        "player": _contestant_to_dict(snapshot.player),
        "opponent": _contestant_to_dict(snapshot.opponent),
        "progress": round(snapshot.progress, 2),
        "challenge": challenge_payload,
        "result": result_payload,
        "game_over": game_over_payload,
        "log": [_log_entry_to_dict(entry) for entry in snapshot.log],
    }


def _get_controller_dependency(controller: DuelController):
    def dependency() -> DuelController:
        return controller

    return dependency


def create_api_app(controller: DuelController) -> FastAPI:
    """Create a FastAPI application wired to the provided duel controller."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        controller.stop_match()

    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
        lifespan=lifespan,
    )
    controller_dep = _get_controller_dependency(controller)

    @app.get("/", response_class=HTMLResponse)
    async def serve_arena_page() -> str:
        return _ARENA_PAGE_HTML

    @app.get("/topics")
    async def get_topics(duel: DuelController = Depends(controller_dep)) -> dict[str, object]:
        return {"topics": duel.get_topics(), "difficulties": [level.value for level in Difficulty]}

    @app.post("/match", status_code=201)
    async def start_match(
        payload: MatchPayload,
        duel: DuelController = Depends(controller_dep),
    ) -> dict[str, object]:
        snapshot = duel.start_match(MatchConfig(difficulty=payload.difficulty, topic=payload.topic))
        return serialize_snapshot(snapshot)

    @app.get("/state")
    async def get_state(duel: DuelController = Depends(controller_dep)) -> dict[str, object]:
        if not duel.has_match():
            return {"active": False, "topics": duel.get_topics()}
        return serialize_snapshot(duel.snapshot())

    @app.post("/answer")
    async def submit_answer(
        payload: AnswerPayload,
        duel: DuelController = Depends(controller_dep),
    ) -> dict[str, object]:
        try:
            accepted = duel.submit_answer(payload.answer)
            snapshot = duel.snapshot()
        except NoActiveMatchError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"accepted": accepted, "state": serialize_snapshot(snapshot)}

    @app.post("/select")
    async def select_option(
        payload: SelectPayload,
        duel: DuelController = Depends(controller_dep),
    ) -> dict[str, object]:
        try:
            accepted = duel.select_option(payload.option_index)
            snapshot = duel.snapshot()
        except NoActiveMatchError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"accepted": accepted, "state": serialize_snapshot(snapshot)}

    @app.post("/next")
    async def next_round(duel: DuelController = Depends(controller_dep)) -> dict[str, object]:
        try:
            accepted = duel.advance()
            snapshot = duel.snapshot()
        except NoActiveMatchError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"accepted": accepted, "state": serialize_snapshot(snapshot)}

    @app.post("/exit")
    async def exit_match(duel: DuelController = Depends(controller_dep)) -> dict[str, object]:
        duel.stop_match()
        return {"active": False}

    return app


def run_api_server(
    controller: DuelController,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the arena until interrupted."""
    app = create_api_app(controller)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level)
    server = uvicorn.Server(config)
    server.run()
