"""Shared prompt templates for agents."""

# System prompts
ANALYTICAL_TONE = """You are an analytical expert who provides detailed, data-driven insights.
Focus on objectivity, fairness, and evidence-based reasoning."""

JSON_OUTPUT = """Your response must be valid JSON that can be parsed directly.
Do not include any markdown formatting or code blocks.
Ensure all strings are properly escaped."""

# Scoring guidelines
SCORING_GUIDELINES = """Scoring scale (0-100):
- 90-100: Exceptional match, highly recommended
- 80-89: Strong match, recommended
- 70-79: Good match, consider carefully
- 60-69: Moderate match, has potential but gaps exist
- 50-59: Weak match, significant gaps
- Below 50: Poor match, not recommended

Provide specific reasoning for your score."""

# Multiple-choice question format shared by every question generator
QUESTION_FORMAT = """Every question is an object with:
- "id": short unique string
- "question": the question text (at least 10 characters)
- "options": exactly 4 answer strings
- "correctOptionIndex": 0-based index of the single correct option
- "explanation": why that option is correct
- "difficulty": "easy", "medium" or "hard"
Exactly one option is correct. Do not reveal the answer in the question text."""

DIFFICULTY_GUIDANCE = {
    "easy": "Focus on fundamental concepts and definitions. Suitable for junior candidates.",
    "medium": "Focus on practical application and common trade-offs. Suitable for mid-level candidates.",
    "hard": "Focus on architecture, edge cases and deep internals. Suitable for senior candidates.",
}
