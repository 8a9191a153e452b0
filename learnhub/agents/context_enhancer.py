"""ContextEnhancerAgent — wraps bare arithmetic in age-appropriate scenarios."""

from __future__ import annotations

import random
import re
from typing import Dict, List, Optional, Sequence

from ..models.context import WorkflowContext
from ..models.schemas import EnhancedQuestion, GeneratedQuestion
from ..util.text_metrics import extract_numbers, format_number
from .base import EducationalAgent


# Text that already reads like a story is left alone.
STORY_INDICATORS = (
    "has", "have", "bought", "sold", "gave", "shared", "collected",
    "apples", "toys", "books", "cookies", "students", "friends",
)
ENHANCEMENT_PRIORITY: Dict[str, float] = {
    "addition": 0.8,
    "subtraction": 0.8,
    "multiplication": 0.7,
    "division": 0.7,
    "fraction_addition": 0.6,
    "decimal_addition": 0.5,
}
RELATABLE_WORDS = (
    "cookies", "toys", "books", "friends", "students", "school",
    "playground", "games", "pets", "family", "home", "park",
)
CHARACTERS = ("Emma", "Alex", "Maya", "Sam", "Zoe", "Jake")

_STORY_TEMPLATES: Dict[str, Sequence[str]] = {
    "addition": (
        "{name} has {a} {items}. Their friend gives them {b} more {items}. "
        "How many {items} does {name} have now?",
    ),
    "subtraction": (
        "{name} had {a} {items}. They gave away {b} {items} to their friends. "
        "How many {items} does {name} have left?",
    ),
    "multiplication": (
        "{name} has {a} {groups}. Each {group} contains {b} {items}. "
        "How many {items} does {name} have in total?",
    ),
    "division": (
        "{name} has {a} {items} to share equally among {b} {groups}. "
        "How many {items} will be in each {group}?",
    ),
}
_STORY_ITEMS = {
    "addition": ("stickers", "marbles", "toy cars", "crayons", "cookies"),
    "subtraction": ("balloons", "candies", "pencils", "erasers", "stamps"),
    "multiplication": ("apples", "books", "toys", "cards", "stickers"),
    "division": ("cookies", "candies", "toys", "cards", "stickers"),
}
_STORY_GROUPS = ("bags", "boxes", "baskets", "plates", "groups")
_GROUP_SINGULAR = {
    "bags": "bag",
    "boxes": "box",
    "baskets": "basket",
    "plates": "plate",
    "groups": "group",
}

_REAL_WORLD_TEMPLATES: Dict[str, Sequence[str]] = {
    "addition": (
        "A school library has {a} fiction books and {b} non-fiction books. "
        "How many books are there in total?",
        "In a parking lot, there are {a} red cars and {b} blue cars. "
        "How many cars are there altogether?",
        "A baker made {a} muffins in the morning and {b} muffins in the "
        "afternoon. How many muffins did the baker make in total?",
    ),
    "subtraction": (
        "A store had {a} bottles of juice. They sold {b} bottles today. "
        "How many bottles of juice are left?",
        "There were {a} students in the cafeteria. {b} students finished "
        "eating and left. How many students are still in the cafeteria?",
        "A farmer had {a} chickens. {b} chickens were sold at the market. "
        "How many chickens does the farmer have now?",
    ),
    "multiplication": (
        "A classroom has {a} rows of desks. Each row has {b} desks. "
        "How many desks are there in the classroom?",
        "A garden has {a} flower beds. Each flower bed has {b} flowers. "
        "How many flowers are there in total?",
        "A pizza restaurant serves {a} tables. Each table seats {b} people. "
        "How many people can the restaurant serve?",
    ),
    "division": (
        "A teacher has {a} stickers to distribute equally among {b} students. "
        "How many stickers will each student receive?",
        "{a} apples need to be packed into {b} equal groups. "
        "How many apples will be in each group?",
        "A pizza is cut into {a} slices to be shared equally among {b} "
        "friends. How many slices will each friend get?",
    ),
}

_CAPITALIZED_WORD_RE = re.compile(r"\b[A-Z][a-z]+\b")


def engagement_score(original: str, enhanced: str, grade: int) -> float:
    score = 0.5
    if len(enhanced) > len(original) * 1.5:
        score += 0.2
    if _CAPITALIZED_WORD_RE.search(enhanced):
        score += 0.2
    lowered = enhanced.lower()
    if any(word in lowered for word in RELATABLE_WORDS):
        score += 0.2
    if grade <= 3 and "story" in lowered:
        score += 0.1
    return min(1.0, score)


class ContextEnhancerAgent(EducationalAgent):
    name = "ContextEnhancerAgent"
    description = "Enhances questions with engaging, age-appropriate real-world context"

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def _needs_enhancement(self, text: str, question_type: str) -> bool:
        lowered = text.lower()
        if any(indicator in lowered for indicator in STORY_INDICATORS):
            return False
        return self.rng.random() < ENHANCEMENT_PRIORITY.get(question_type, 0.3)

    def _context_type(self, grade: int) -> str:
        roll = self.rng.random()
        if grade <= 2:
            return "story" if roll < 0.7 else "real-world"
        if grade <= 4:
            return "story" if roll < 0.5 else "real-world"
        return "real-world" if roll < 0.8 else "story"

    def _rewrite(self, text: str, question_type: str, context_type: str) -> str:
        numbers: List[float] = extract_numbers(text)
        if len(numbers) < 2:
            return text
        a, b = format_number(numbers[0]), format_number(numbers[1])

        if context_type == "story" and question_type in _STORY_TEMPLATES:
            groups = self.rng.choice(_STORY_GROUPS)
            template = self.rng.choice(_STORY_TEMPLATES[question_type])
            return template.format(
                name=self.rng.choice(CHARACTERS),
                items=self.rng.choice(_STORY_ITEMS[question_type]),
                groups=groups,
                group=_GROUP_SINGULAR[groups],
                a=a,
                b=b,
            )
        if context_type == "real-world" and question_type in _REAL_WORLD_TEMPLATES:
            return self.rng.choice(_REAL_WORLD_TEMPLATES[question_type]).format(a=a, b=b)
        return text

    @staticmethod
    def _unchanged(question: GeneratedQuestion) -> EnhancedQuestion:
        return EnhancedQuestion(
            original_text=question.text,
            enhanced_text=question.text,
            context_type="none",
            engagement_score=0.5,
        )

    def enhance(
        self, question: GeneratedQuestion, question_type: str, grade: int
    ) -> EnhancedQuestion:
        if not self._needs_enhancement(question.text, question_type):
            return self._unchanged(question)

        context_type = self._context_type(grade)
        enhanced = self._rewrite(question.text, question_type, context_type)
        if enhanced == question.text:
            return self._unchanged(question)
        return EnhancedQuestion(
            original_text=question.text,
            enhanced_text=enhanced,
            context_type=context_type,
            engagement_score=engagement_score(question.text, enhanced, grade),
        )

    def run(self, context: WorkflowContext) -> WorkflowContext:
        if not context.questions:
            context.workflow.warnings.append("No questions to enhance")
            return context
        context.enhanced_questions = [
            self.enhance(q, context.question_type, context.grade)
            for q in context.questions
        ]
        return context
