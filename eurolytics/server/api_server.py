"""FastAPI server that exposes the portal to the browser page."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict
from threading import Thread
from typing import Iterator

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field
import uvicorn

from eurolytics.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from eurolytics.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from eurolytics.core.markdown_renderer import renderer
from eurolytics.core.models import Idea, Project, Quiz, User
from eurolytics.core.portal_manager import PortalManager
from eurolytics.core.services.quiz_session import QuizNotFoundError, SessionView
from eurolytics.core.services.ranking import RankingScope
from eurolytics.core.services.scoring_engine import resolve_display_max
from eurolytics.core.session_context import AuthenticationError
from eurolytics.gateway.base import GatewayError, NotFoundError

_PORTAL_PAGE_HTML = """<!doctype html>
<html lang="pt-BR">
  <head>
    <meta charset="utf-8" />
    <title>Eurolytics</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #0b1120; color: #f5f7ff; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; }
      .card { background: #111a30; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.5rem 1.5rem rgba(0, 0, 0, 0.4); }
      .hidden { display: none; }
      .primary-button { border: none; border-radius: 0.75rem; padding: 0.85rem 1.5rem; font-size: 1rem; background: #1f9aa5; color: #fff; cursor: pointer; }
      .primary-button:disabled { opacity: 0.6; cursor: not-allowed; }
      .options-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap: 0.75rem; }
      .option-button { border: 2px solid transparent; border-radius: 0.75rem; padding: 1rem; font-size: 1rem; background: #1f9aa5; color: #fff; cursor: pointer; }
      .option-button.selected { border-color: #facc15; }
      .timer-track { width: 100%; height: 0.6rem; background: rgba(250, 204, 21, 0.25); border-radius: 999px; overflow: hidden; }
      #timer-fill { height: 100%; background: #facc15; }
      input { padding: 0.6rem; border-radius: 0.5rem; border: none; margin-right: 0.5rem; }
      table { width: 100%; border-collapse: collapse; }
      td, th { padding: 0.35rem; text-align: left; }
      #status { min-height: 1.25rem; color: #facc15; }
    </style>
  </head>
  <body>
    <section class="card" id="login-card">
      <h1>Eurolytics</h1>
      <input id="email" type="email" placeholder="E-mail" />
      <input id="password" type="password" placeholder="Senha" />
      <button id="login-button" class="primary-button">Entrar</button>
    </section>
    <section class="card hidden" id="portal-card">
      <h2 id="welcome"></h2>
      <p id="points"></p>
      <button id="logout-button" class="primary-button">Sair</button>
    </section>
    <section class="card hidden" id="quizzes-card">
      <h2>Quizzes</h2>
      <div id="quiz-list"></div>
    </section>
    <section class="card hidden" id="quiz-card">
      <h2 id="quiz-title"></h2>
      <p id="quiz-progress"></p>
      <div class="timer-track"><div id="timer-fill"></div></div>
      <div id="question-container"></div>
      <div id="options-container" class="options-grid"></div>
      <p>
        <button id="advance-button" class="primary-button">Próxima</button>
        <button id="exit-button" class="primary-button">Sair do quiz</button>
      </p>
    </section>
    <section class="card hidden" id="result-card">
      <h2>Resultado</h2>
      <p id="result-summary"></p>
      <p id="save-status"></p>
      <button id="retry-button" class="primary-button">Tentar novamente</button>
      <button id="another-button" class="primary-button">Outro quiz</button>
    </section>
    <section class="card hidden" id="ranking-card">
      <h2>Ranking</h2>
      <table id="ranking-table"></table>
    </section>
    <p id="status"></p>
    <script>
      const byId = id => document.getElementById(id);
      const statusEl = byId('status');
      let pollHandle = null;

      function textElement(tag, text) {
        const element = document.createElement(tag);
        element.textContent = text;
        return element;
      }

      function setVisibility(element, isVisible) {
        element.classList.toggle('hidden', !isVisible);
      }

      async function call(method, path, body) {
        const response = await fetch(path, {
          method,
          headers: { 'Content-Type': 'application/json' },
          body: body === undefined ? undefined : JSON.stringify(body)
        });
        const payload = await response.json().catch(() => ({}));
        if (!response.ok) {
          throw new Error(payload.detail || 'Erro inesperado.');
        }
        return payload;
      }

      async function guarded(action) {
        try {
          statusEl.textContent = '';
          await action();
        } catch (error) {
          statusEl.textContent = error.message;
        }
      }

      function renderSession(view) {
        const active = view.state === 'active';
        const completed = view.state === 'completed';
        setVisibility(byId('quizzes-card'), !active && !completed);
        setVisibility(byId('quiz-card'), active);
        setVisibility(byId('result-card'), completed);
        if (active) {
          byId('quiz-title').textContent = view.quiz_title;
          byId('quiz-progress').textContent = `Pergunta ${view.question_index + 1} de ${view.question_count} · ${view.remaining_seconds}s`;
          byId('timer-fill').style.width = `${Math.round(view.progress * 100)}%`;
          byId('question-container').innerHTML = view.question.question_html;
          const options = byId('options-container');
          options.innerHTML = '';
          view.question.options_html.forEach((option, index) => {
            const button = document.createElement('button');
            button.className = 'option-button' + (view.selected_option === index ? ' selected' : '');
            button.innerHTML = `${String.fromCharCode(65 + index)}. ${option}`;
            button.addEventListener('click', () => guarded(async () => renderSession(await call('POST', '/session/select', { option_index: index }))));
            options.appendChild(button);
          });
          byId('advance-button').disabled = view.selected_option === null;
        }
        if (completed) {
          const result = view.result;
          byId('result-summary').textContent = `${result.score}/${result.display_max} pontos (${result.percentage}%) · ${result.correct_count} certas, ${result.incorrect_count} erradas`;
          byId('save-status').textContent = `Salvamento: ${result.save_status}`;
        }
      }

      async function refreshSession() {
        renderSession(await call('GET', '/session'));
      }

      async function loadQuizzes() {
        const quizzes = await call('GET', '/quizzes');
        const list = byId('quiz-list');
        list.innerHTML = '';
        quizzes.forEach(quiz => {
          const item = document.createElement('div');
          const description = document.createElement('div');
          description.innerHTML = quiz.description_html;
          item.append(
            textElement('h3', quiz.title),
            description,
            textElement('p', `${quiz.question_count} perguntas · ${quiz.max_points} pontos`)
          );
          const button = document.createElement('button');
          button.className = 'primary-button';
          button.textContent = 'Iniciar';
          button.addEventListener('click', () => guarded(async () => renderSession(await call('POST', `/quizzes/${quiz.id}/start`))));
          item.appendChild(button);
          list.appendChild(item);
        });
      }

      async function loadRanking() {
        const ranking = await call('GET', '/ranking');
        const table = byId('ranking-table');
        table.replaceChildren();
        ranking.rows.forEach(row => {
          const tr = document.createElement('tr');
          tr.append(
            textElement('td', `${row.position}º`),
            textElement('td', row.full_name),
            textElement('td', row.department),
            textElement('td', String(row.points))
          );
          table.appendChild(tr);
        });
        const footer = document.createElement('tr');
        const summary = textElement('th', `Sua posição: ${ranking.user_position || '-'}`);
        summary.colSpan = 4;
        footer.appendChild(summary);
        table.appendChild(footer);
      }

      async function loadPoints() {
        const payload = await call('GET', '/points');
        byId('points').textContent = `${payload.points} pontos`;
      }

      async function enterPortal(user) {
        setVisibility(byId('login-card'), false);
        setVisibility(byId('portal-card'), true);
        setVisibility(byId('ranking-card'), true);
        byId('welcome').textContent = `Olá, ${user.full_name}`;
        await loadQuizzes();
        await loadRanking();
        await loadPoints();
        await refreshSession();
        pollHandle = setInterval(() => guarded(async () => { await refreshSession(); await loadPoints(); }), 1000);
      }

      byId('login-button').addEventListener('click', () => guarded(async () => {
        const user = await call('POST', '/auth/login', { email: byId('email').value, password: byId('password').value });
        await enterPortal(user);
      }));
      byId('logout-button').addEventListener('click', () => guarded(async () => {
        await call('POST', '/auth/logout');
        clearInterval(pollHandle);
        window.location.reload();
      }));
      byId('advance-button').addEventListener('click', () => guarded(async () => renderSession(await call('POST', '/session/advance'))));
      byId('exit-button').addEventListener('click', () => guarded(async () => renderSession(await call('POST', '/session/exit'))));
      byId('retry-button').addEventListener('click', () => guarded(async () => renderSession(await call('POST', '/session/retry'))));
      byId('another-button').addEventListener('click', () => guarded(async () => {
        renderSession(await call('POST', '/session/try-another'));
        await loadRanking();
      }));

      fetch('/auth/me').then(response => response.ok ? response.json() : null).then(user => {
        if (user) { guarded(() => enterPortal(user)); }
      });
    </script>
  </body>
</html>
"""


class LoginPayload(BaseModel):
    email: str
    password: str


class RegisterPayload(BaseModel):
    email: str
    password: str
    full_name: str
    department: str
    role: str = "colaborador"


class SelectOptionPayload(BaseModel):
    """Payload schema for choosing an option on the current question."""

    option_index: int


class IdeaPayload(BaseModel):
    title: str
    description: str
    category: str
    propose_project: bool = False
    project_max: int | None = Field(default=None, ge=1)


class ApprovalPayload(BaseModel):
    points: int = Field(default=100, ge=0)


class ProjectStatusPayload(BaseModel):
    status: str
    justification: str | None = None


@contextmanager
def _http_errors() -> Iterator[None]:
    """Translate domain exceptions into HTTP responses."""
    try:
        yield
    except (QuizNotFoundError, NotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except GatewayError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc


def _user_payload(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
        "department": user.department,
        "points": user.points,
        "avatar_url": user.avatar_url,
    }


def _quiz_payload(quiz: Quiz) -> dict[str, object]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description_html": renderer.render_fragment(quiz.description, placeholder="Sem descrição."),
        "question_count": len(quiz.questions),
        "max_points": resolve_display_max(quiz),
        "time_limit_seconds": quiz.time_limit_seconds,
    }


def _idea_payload(idea: Idea) -> dict[str, object]:
    payload = asdict(idea)
    payload["description_html"] = renderer.render_fragment(idea.description)
    return payload


def _project_payload(project: Project) -> dict[str, object]:
    payload = asdict(project)
    payload["participant_count"] = len(project.participant_ids)
    return payload


def _session_payload(view: SessionView) -> dict[str, object]:
    payload: dict[str, object] = {
        "state": view.state.name.lower(),
        "quiz_id": view.quiz_id,
        "quiz_title": view.quiz_title,
        "question_index": view.question_index,
        "question_count": view.question_count,
        "remaining_seconds": view.remaining_seconds,
        "progress": view.progress,
        "selected_option": view.selected_option,
        "question": None,
        "result": None,
    }
    if view.question is not None:
        # The answer key stays on the server while the quiz is running.
        payload["question"] = {
            "id": view.question.id,
            "question_html": renderer.render_fragment(view.question.question_text),
            "options_html": [renderer.render_inline(option) for option in view.question.options],
            "points": view.question.points,
        }
    if view.result is not None:
        breakdown = view.result.breakdown
        payload["result"] = {
            "score": breakdown.score,
            "display_max": breakdown.display_max,
            "percentage": breakdown.percentage,
            "correct_count": breakdown.correct_count,
            "incorrect_count": breakdown.incorrect_count,
            "question_results": list(breakdown.question_results),
            "reason": view.result.reason.value,
            "completed_at": view.result.completed_at.isoformat(),
            "save_status": view.result.save_status(),
        }
    return payload


def _get_portal_manager_dependency(portal_manager: PortalManager):
    def dependency() -> PortalManager:
        return portal_manager

    return dependency


def create_api_app(portal_manager: PortalManager) -> FastAPI:
    """Create a FastAPI application wired to the provided portal manager."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    manager_dep = _get_portal_manager_dependency(portal_manager)

    @app.get("/", response_class=HTMLResponse)
    def serve_portal_page() -> str:
        return _PORTAL_PAGE_HTML

    # --- Auth ---

    @app.post("/auth/login")
    def login(payload: LoginPayload, manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        user = manager.login(payload.email, payload.password)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid e-mail or password.")
        return _user_payload(user)

    @app.post("/auth/register", status_code=201)
    def register(payload: RegisterPayload, manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            user = manager.register(
                payload.email, payload.password, payload.full_name, payload.department, payload.role
            )
        return _user_payload(user)

    @app.post("/auth/logout")
    def logout(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        manager.logout()
        return {"signed_in": False}

    @app.get("/auth/me")
    def current_user(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            user = manager.session.require_user()
        return _user_payload(user)

    @app.get("/points")
    def current_points(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            manager.session.require_user()
        return {"points": manager.current_points()}

    # --- Quiz session ---

    @app.get("/quizzes")
    def list_quizzes(manager: PortalManager = Depends(manager_dep)) -> list[dict[str, object]]:
        with _http_errors():
            quizzes = manager.list_quizzes()
        return [_quiz_payload(quiz) for quiz in quizzes]

    @app.post("/quizzes/{quiz_id}/start")
    def start_quiz(quiz_id: str, manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            view = manager.start_quiz(quiz_id)
        return _session_payload(view)

    @app.get("/session")
    def get_session(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        return _session_payload(manager.quiz_view())

    @app.post("/session/select")
    def select_option(payload: SelectOptionPayload, manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            view = manager.select_option(payload.option_index)
        return _session_payload(view)

    @app.post("/session/advance")
    def advance(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            view = manager.advance()
        return _session_payload(view)

    @app.post("/session/exit")
    def exit_quiz(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            view = manager.exit_quiz()
        return _session_payload(view)

    @app.post("/session/retry")
    def retry(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            view = manager.retry()
        return _session_payload(view)

    @app.post("/session/try-another")
    def try_another(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            view = manager.try_another()
        return _session_payload(view)

    @app.get("/quiz-history")
    def quiz_history(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            history = manager.quiz_history()
        return asdict(history)

    # --- Ranking & gamification ---

    @app.get("/ranking")
    def ranking(
        scope: RankingScope = RankingScope.ALL_TIME,
        department: str | None = None,
        manager: PortalManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            view = manager.leaderboard(scope, department or None)
        payload = asdict(view)
        payload["scope"] = view.scope.value
        return payload

    @app.get("/departments")
    def departments(manager: PortalManager = Depends(manager_dep)) -> list[dict[str, object]]:
        return [asdict(entry) for entry in manager.department_stats()]

    @app.get("/badges")
    def badges(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            statuses = manager.badges()
        return {
            "earned_count": sum(1 for badge in statuses if badge.earned),
            "total": len(statuses),
            "badges": [asdict(badge) for badge in statuses],
        }

    @app.get("/dashboard")
    def dashboard(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            view = manager.dashboard()
            history = manager.quiz_history()
        return {
            "user": _user_payload(view.user),
            "level": asdict(view.level),
            "position": view.position,
            "badges": [asdict(badge) for badge in view.badges if badge.earned],
            "completed_quizzes": view.completed_quizzes,
            "recent_ideas": [_idea_payload(idea) for idea in view.recent_ideas],
            "quiz_history": asdict(history),
        }

    @app.get("/analytics")
    def analytics(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            summary = manager.analytics()
        summary["top_users"] = [asdict(row) for row in summary["top_users"]]
        return summary

    # --- Ideas ---

    @app.get("/ideas/mine")
    def my_ideas(
        status: str | None = None,
        search: str | None = None,
        manager: PortalManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        with _http_errors():
            ideas = manager.ideas.my_ideas(status, search)
        return [_idea_payload(idea) for idea in ideas]

    @app.get("/ideas")
    def all_ideas(
        status: str | None = None,
        search: str | None = None,
        manager: PortalManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        with _http_errors():
            ideas = manager.ideas.all_ideas(status, search)
        return [_idea_payload(idea) for idea in ideas]

    @app.post("/ideas", status_code=201)
    def submit_idea(payload: IdeaPayload, manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            idea = manager.ideas.submit(
                payload.title, payload.description, payload.category, payload.propose_project, payload.project_max
            )
        return _idea_payload(idea)

    @app.post("/ideas/{idea_id}/approve")
    def approve_idea(
        idea_id: str,
        payload: ApprovalPayload | None = None,
        manager: PortalManager = Depends(manager_dep),
    ) -> dict[str, object]:
        points = payload.points if payload is not None else ApprovalPayload().points
        with _http_errors():
            idea = manager.ideas.approve(idea_id, points)
        return _idea_payload(idea)

    @app.post("/ideas/{idea_id}/reject")
    def reject_idea(idea_id: str, manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            idea = manager.ideas.reject(idea_id)
        return _idea_payload(idea)

    # --- Projects ---

    @app.get("/projects")
    def list_projects(
        status: str | None = None,
        search: str | None = None,
        manager: PortalManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        with _http_errors():
            projects = manager.projects.list_projects(status, search)
        return [_project_payload(project) for project in projects]

    @app.get("/projects/{project_id}/participants")
    def project_participants(project_id: str, manager: PortalManager = Depends(manager_dep)) -> list[dict[str, object]]:
        with _http_errors():
            users = manager.projects.participants(project_id)
        return [_user_payload(user) for user in users]

    @app.post("/projects/{project_id}/join")
    def join_project(project_id: str, manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        with _http_errors():
            project = manager.projects.join(project_id)
        return _project_payload(project)

    @app.post("/projects/{project_id}/status")
    def update_project_status(
        project_id: str,
        payload: ProjectStatusPayload,
        manager: PortalManager = Depends(manager_dep),
    ) -> dict[str, object]:
        with _http_errors():
            project = manager.projects.update_status(project_id, payload.status, payload.justification)
        return _project_payload(project)

    # --- Notifications ---

    @app.get("/notifications")
    def notifications(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        return {
            "unread": manager.notifications.unread_count(),
            "items": [asdict(item) for item in manager.notifications.list()],
        }

    @app.post("/notifications/read")
    def mark_notifications_read(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        manager.notifications.mark_all_read()
        return {"unread": 0}

    @app.delete("/notifications")
    def clear_notifications(manager: PortalManager = Depends(manager_dep)) -> dict[str, object]:
        manager.notifications.clear()
        return {"unread": 0}

    return app


def start_api_server(
    portal_manager: PortalManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(portal_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="PortalApiServer", daemon=True)
    thread.start()
    return thread
