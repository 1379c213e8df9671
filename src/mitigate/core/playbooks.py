"""Playbook references - static remediation guides that can seed tasks."""

from dataclasses import dataclass, field

from .tasks import Category, Priority, parse_enum, require_title


@dataclass(frozen=True)
class Playbook:
    """Summary of a remediation guide. The guide's content lives elsewhere."""

    id: str
    title: str
    description: str
    category: Category
    priority: Priority
    estimated_time: str = ""
    difficulty: str = ""
    steps: tuple[str, ...] = field(default_factory=tuple)

    def task_description(self) -> str:
        """Description with the numbered step titles appended."""
        if not self.steps:
            return self.description
        numbered = "\n".join(f"{i}. {step}" for i, step in enumerate(self.steps, start=1))
        return f"{self.description}\n\nSteps:\n{numbered}"

    def task_notes(self) -> str:
        return (
            f"Estimated time: {self.estimated_time or 'n/a'}\n"
            f"Difficulty: {self.difficulty or 'n/a'}\n"
            "Created from remediation playbook."
        )

    @classmethod
    def from_dict(cls, playbook_id: str, data: dict) -> "Playbook":
        steps = []
        for step in data.get("steps", []):
            steps.append(step.get("title", "") if isinstance(step, dict) else str(step))
        return cls(
            id=playbook_id,
            title=require_title(data.get("title")),
            description=data.get("description", ""),
            category=parse_enum(Category, data.get("category"), "category"),
            priority=parse_enum(Priority, data.get("priority"), "priority"),
            estimated_time=data.get("estimatedTime", ""),
            difficulty=data.get("difficulty", ""),
            steps=tuple(s for s in steps if s),
        )
