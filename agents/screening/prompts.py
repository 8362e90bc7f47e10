"""Screening agent prompt templates."""

from agents.common.prompts import (
    ANALYTICAL_TONE,
    JSON_OUTPUT,
    QUESTION_FORMAT,
    SCORING_GUIDELINES,
)
from core.utils.formatting import format_skills


SCREENING_SYSTEM_PROMPT = f"""{ANALYTICAL_TONE}

You are an expert HR recruiter screening resumes against a job posting.
Score how relevant the candidate is to the role and prepare a short
multiple-choice assessment for them.

{SCORING_GUIDELINES}

Be fair and unbiased. Focus on qualifications, not demographics.
Only credit skills the resume actually demonstrates.

{JSON_OUTPUT}
"""


RESUME_SCORING_PROMPT = """Screen this candidate for the position.

Job Title: {job_title}

Job Description:
{job_description}

Required Skills: {required_skills}

Resume Text:
{resume_text}

Return a JSON object with:
- "score": integer 0-100, relevance of the candidate to the role
- "summary": brief reasoning for the score
- "missing_skills": required skills the resume does not demonstrate
- "candidate_name": name found in the resume, or null
- "candidate_email": email found in the resume, or null
- "questions": {{"aptitude": [5 logic, math or reasoning questions],
                 "technical": [5 role-specific technical questions]}}

{question_format}"""


def build_scoring_prompt(
    resume_text: str,
    required_skills: list[str],
    job_title: str | None,
    job_description: str | None,
) -> str:
    return RESUME_SCORING_PROMPT.format(
        job_title=job_title or "Software Engineer",
        job_description=job_description or "Not provided",
        required_skills=format_skills(required_skills),
        resume_text=resume_text,
        question_format=QUESTION_FORMAT,
    )
