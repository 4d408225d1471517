from __future__ import annotations

import argparse
import json
import os
import pathlib
import sys

# Force /app into path for Docker compatibility
sys.path.append("/app")
sys.path.append(os.getcwd())

from app.core import errors
from app.core.security import Identity, UserRole
from app.db.session import SessionLocal
from app.schemas.quiz import QuizDraft
from app.services.quiz_lifecycle import QuizLifecycleManager
from app.services.quiz_repository import QuizRepository


def _load(path: pathlib.Path) -> list[QuizDraft]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    items = raw if isinstance(raw, list) else [raw]
    return [QuizDraft.model_validate(item) for item in items]


def main() -> None:
    p = argparse.ArgumentParser(description="Create quizzes from a JSON file of quiz drafts")
    p.add_argument("path", type=pathlib.Path)
    p.add_argument("--owner-id", required=True)
    p.add_argument("--owner-name", default="")
    args = p.parse_args()

    owner = Identity(user_id=args.owner_id, role=UserRole.faculty, name=args.owner_name)
    drafts = _load(args.path)

    failed = 0
    with SessionLocal() as db:
        lifecycle = QuizLifecycleManager(QuizRepository(db))
        for i, draft in enumerate(drafts, start=1):
            try:
                quiz, questions = lifecycle.create(owner, draft)
            except errors.ValidationError as e:
                failed += 1
                print(f"[{i}] {draft.name or '<unnamed>'}: rejected")
                for problem in e.errors:
                    print(f"    - {problem}")
                continue
            print(f"[{i}] {quiz.name}: id={quiz.id} questions={len(questions)} password={quiz.password or '-'}")

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
