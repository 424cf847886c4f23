"""Seed rows for the in-memory demo backend."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

DEMO_PASSWORD = "eurolytics"


def _days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


def build_demo_rows() -> dict[str, list[dict[str, Any]]]:
    """Return a fresh copy of every demo table, keyed by table name."""
    users = [
        {"id": "u-ana", "email": "ana.souza@eurolytics.com", "full_name": "Ana Souza", "role": "colaborador", "department": "Financeiro", "points": 820, "created_at": _days_ago(200)},
        {"id": "u-bruno", "email": "bruno.lima@eurolytics.com", "full_name": "Bruno Lima", "role": "gestor", "department": "Operações", "points": 640, "created_at": _days_ago(180)},
        {"id": "u-carla", "email": "carla.mendes@eurolytics.com", "full_name": "Carla Mendes", "role": "colaborador", "department": "Financeiro", "points": 410, "created_at": _days_ago(150)},
        {"id": "u-diego", "email": "diego.alves@eurolytics.com", "full_name": "Diego Alves", "role": "executivo", "department": "Diretoria", "points": 300, "created_at": _days_ago(365)},
        {"id": "u-elisa", "email": "elisa.rocha@eurolytics.com", "full_name": "Elisa Rocha", "role": "colaborador", "department": "Operações", "points": 120, "created_at": _days_ago(40)},
        {"id": "u-fabio", "email": "fabio.costa@eurolytics.com", "full_name": "Fábio Costa", "role": "colaborador", "department": "TI", "points": 0, "created_at": _days_ago(5)},
    ]
    quizzes = [
        {
            "id": "q-compliance",
            "title": "Compliance Essentials",
            "description": "Core rules every employee should know about **data protection**.",
            "max_points": 60,
            "time_limit": 300,
            "created_at": _days_ago(30),
            "quiz_questions": [
                {"id": "q-compliance-1", "order": 1, "question": "Who may access customer payment data?", "options": ["Anyone in the company", "Only authorized staff", "External partners", "Interns"], "correct_answer": 1, "points": 10},
                {"id": "q-compliance-2", "order": 2, "question": "How long must audit records be kept?", "options": ["1 month", "1 year", "5 years", "Forever"], "correct_answer": 2, "points": 20},
                {"id": "q-compliance-3", "order": 3, "question": "What should you do with a phishing e-mail?", "options": ["Reply asking for details", "Forward to colleagues", "Report it to security", "Ignore it"], "correct_answer": 2, "points": 30},
            ],
        },
        {
            "id": "q-innovation",
            "title": "Innovation Culture",
            "description": "How ideas move from submission to project.",
            "max_points": 0,
            "time_limit": 120,
            "created_at": _days_ago(10),
            "questions": [
                {"id": "q-innovation-1", "prompt": "Who reviews submitted ideas?", "options": "[\"Managers and executives\", \"Any colleague\", \"Nobody\"]", "correct_option_index": 0, "points": 15},
                {"id": "q-innovation-2", "prompt": "What happens to an approved idea?", "options": ["It is archived", "A project is created from it"], "correct_option_index": 1, "points": 15},
            ],
        },
        {
            "id": "q-empty",
            "title": "Coming Soon",
            "description": "Questions are still being written.",
            "max_points": 50,
            "time_limit": 60,
            "created_at": _days_ago(1),
            "quiz_questions": [],
        },
    ]
    ideas = [
        {"id": "i-1", "user_id": "u-ana", "title": "Automated expense approval", "description": "Route small expenses automatically.", "category": "Processos", "status": "aprovado", "points_awarded": 100, "created_at": _days_ago(3), "updated_at": _days_ago(2)},
        {"id": "i-2", "user_id": "u-carla", "title": "Shared budget dashboard", "description": "One view of every team budget.", "category": "Tecnologia", "status": "aprovado", "points_awarded": 100, "created_at": _days_ago(12), "updated_at": _days_ago(11)},
        {"id": "i-3", "user_id": "u-elisa", "title": "Night shift handover checklist", "description": "Reduce handover errors.", "category": "Operações", "status": "pendente", "points_awarded": 0, "created_at": _days_ago(1), "updated_at": _days_ago(1), "propose_project": True, "project_max": 5},
        {"id": "i-4", "user_id": "u-ana", "title": "Paperless invoices", "description": "Stop printing supplier invoices.", "category": "Sustentabilidade", "status": "rejeitado", "points_awarded": 0, "created_at": _days_ago(45), "updated_at": _days_ago(44)},
    ]
    projects = [
        {"id": "p-1", "title": "Automated expense approval", "description": "Route small expenses automatically.", "manager_id": "u-ana", "department": "Financeiro", "max_participants": 3, "status": "ativo", "created_at": _days_ago(2)},
        {"id": "p-2", "title": "Shared budget dashboard", "description": "One view of every team budget.", "manager_id": "u-carla", "department": "Financeiro", "max_participants": 8, "status": "concluido", "created_at": _days_ago(11)},
    ]
    participants = [
        {"project_id": "p-1", "user_id": "u-bruno"},
        {"project_id": "p-2", "user_id": "u-elisa"},
    ]
    attempts = [
        {"id": "a-1", "user_id": "u-ana", "quiz_id": "q-compliance", "score": 60, "answers": {"q-compliance-1": 1, "q-compliance-2": 2, "q-compliance-3": 2}, "completed_at": _days_ago(20)},
    ]
    passwords = {user["email"]: DEMO_PASSWORD for user in users}
    return {
        "users": users,
        "quizzes": quizzes,
        "ideas": ideas,
        "projects": projects,
        "project_participants": participants,
        "quiz_attempts": attempts,
        "passwords": [{"email": email, "password": password} for email, password in passwords.items()],
    }
