from __future__ import annotations

from typing import Optional, Sequence

from ..database import orm
from ..database.session import session_scope
from .model import Rubric, RubricCriterion, RubricLevel
from .repository import RubricRepository


class SQLAlchemyRubricRepository(RubricRepository):
    def get_for_assignment(self, assignment_id: int) -> Optional[Rubric]:
        row = orm.Rubric.query.filter_by(assignment_id=int(assignment_id)).first()
        if not row:
            return None
        return Rubric(
            rubric_id=int(row.id),
            assignment_id=int(row.assignment_id),
            title=row.title,
            criteria=tuple(
                RubricCriterion(
                    criterion_id=int(c.id),
                    name=c.name,
                    weight=float(c.weight),
                    levels=tuple(RubricLevel(level_id=int(l.id), label=l.label, points=float(l.points)) for l in c.levels),
                )
                for c in row.criteria
            ),
        )

    def save(self, *, assignment_id: int, title: str, criteria: Sequence[dict]) -> int:
        with session_scope() as session:
            existing = orm.Rubric.query.filter_by(assignment_id=int(assignment_id)).first()
            if existing:
                session.delete(existing)
                session.flush()

            rubric = orm.Rubric(assignment_id=int(assignment_id), title=title)
            for position, item in enumerate(criteria):
                criterion = orm.RubricCriterion(name=item["name"], weight=float(item.get("weight", 1.0)), position=position)
                criterion.levels = [orm.RubricLevel(label=l["label"], points=float(l["points"])) for l in item["levels"]]
                rubric.criteria.append(criterion)
            session.add(rubric)
            session.flush()
            return int(rubric.id)
