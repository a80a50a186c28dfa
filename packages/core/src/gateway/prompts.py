"""Prompts for the Python tutor.

The system prompt is the default persona used when a caller sends no system
message of its own; the builders turn tutor actions into a single user turn.
"""

DEFAULT_SYSTEM_PROMPT = "You are an expert Python sensei."

# Reply budgets (max_tokens) per tutor action.
LESSON_MAX_TOKENS = 4096
EXERCISE_MAX_TOKENS = 2048
REVIEW_MAX_TOKENS = 1024
HINT_MAX_TOKENS = 512

DIFFICULTIES = ("easy", "medium", "hard")


def get_system_prompt() -> str:
    """Return the tutor persona used to seed new conversations."""
    return (
        f"{DEFAULT_SYSTEM_PROMPT} "
        "You teach Python step by step, explain concepts with short runnable "
        "examples, and point out common mistakes. "
        "Be encouraging and educational. Keep responses concise and use "
        "Markdown code blocks for any code."
    )


def get_hint_level(attempt_number: int) -> str:
    """Escalate from gentle to direct hints as attempts pile up."""
    if attempt_number <= 1:
        return "gentle"
    if attempt_number <= 3:
        return "moderate"
    return "direct"


def build_hint_prompt(exercise: str, current_code: str, attempt_number: int) -> str:
    """Ask for a hint that guides without giving the solution away."""
    level = get_hint_level(attempt_number)
    prompt = (
        f'Provide a {level} hint for this exercise: "{exercise}"\n\n'
        "Current code:\n"
        f"```python\n{current_code}\n```\n\n"
        f"Attempt number: {attempt_number}\n\n"
        "Give a hint that guides without giving the solution."
    )
    if level == "direct":
        prompt += " Be more specific since they've tried multiple times."
    return prompt


def build_code_review_prompt(code: str, exercise: str, error: str | None = None) -> str:
    """Ask for an encouraging review of ``code``, optionally with its error."""
    prompt = (
        f'Review this Python code for the exercise: "{exercise}"\n\n'
        "Code:\n"
        f"```python\n{code}\n```\n\n"
    )
    if error:
        prompt += f"Error encountered:\n{error}\n\n"
    prompt += (
        "Provide:\n"
        "1. What's working well\n"
        "2. What needs improvement (if any errors, explain them clearly)\n"
        "3. Specific suggestions for fixes\n"
        "4. Best practices tips\n\n"
        "Be encouraging and educational. Keep response concise."
    )
    return prompt


def build_lesson_prompt(
    phase: int,
    topic: str,
    strengths: list[str] | None = None,
    weaknesses: list[str] | None = None,
    completed_lessons: list[str] | None = None,
) -> str:
    """Ask for a lesson on ``topic``, tailored to the learner's progress.

    The reply is requested as a JSON object with ``title``, ``description``,
    ``concepts``, ``explanation``, ``codeExamples`` and ``commonMistakes``.
    """
    strengths = strengths or []
    weaknesses = weaknesses or []
    completed_lessons = completed_lessons or []
    return (
        f"{DEFAULT_SYSTEM_PROMPT} Generate a comprehensive lesson for "
        f'Phase {phase} on the topic: "{topic}".\n\n'
        "User Progress:\n"
        f"- Strengths: {', '.join(strengths) or 'None yet'}\n"
        f"- Weaknesses: {', '.join(weaknesses) or 'None yet'}\n"
        f"- Completed Lessons: {len(completed_lessons)}\n\n"
        "Create a lesson that includes:\n"
        "1. Clear explanation of the concept\n"
        "2. Real-world examples\n"
        "3. 2-3 code examples with increasing complexity\n"
        "4. Common pitfalls to avoid\n\n"
        "Format as JSON:\n"
        "{\n"
        '  "title": "Lesson title",\n'
        '  "description": "Brief description",\n'
        '  "concepts": ["concept1", "concept2"],\n'
        '  "explanation": "Detailed explanation with examples",\n'
        '  "codeExamples": [\n'
        "    {\n"
        '      "title": "Example 1",\n'
        '      "code": "Python code here",\n'
        '      "explanation": "What this does"\n'
        "    }\n"
        "  ],\n"
        '  "commonMistakes": ["mistake1", "mistake2"]\n'
        "}"
    )


def build_exercise_prompt(
    concept: str, difficulty: str, weaknesses: list[str] | None = None
) -> str:
    """Ask for a coding exercise as JSON, steering towards known weaknesses.

    Raises:
        ValueError: If ``difficulty`` is not one of ``DIFFICULTIES``.
    """
    if difficulty not in DIFFICULTIES:
        raise ValueError(
            f"Unknown difficulty {difficulty!r}; expected one of {', '.join(DIFFICULTIES)}"
        )
    prompt = f"Generate a {difficulty} Python coding exercise focused on: {concept}\n\n"
    if weaknesses:
        prompt += f"User struggles with: {', '.join(weaknesses)}\n\n"
    prompt += (
        "Create an exercise as JSON:\n"
        "{\n"
        '  "prompt": "Clear problem statement",\n'
        '  "starterCode": "# Starting code template",\n'
        '  "solution": "Complete solution",\n'
        '  "testCases": [\n'
        '    {"input": "test input", "expectedOutput": "expected result", '
        '"description": "what it tests"}\n'
        "  ],\n"
        '  "hints": ["hint1", "hint2", "hint3"]\n'
        "}"
    )
    return prompt
