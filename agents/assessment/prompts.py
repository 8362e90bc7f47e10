"""Knowledge-grounded assessment prompt templates."""

from agents.common.prompts import DIFFICULTY_GUIDANCE, JSON_OUTPUT, QUESTION_FORMAT

RETRIEVAL_QUERY_TEMPLATE = "Key technical concepts and requirements for: {jd}"

ASSESSMENT_SYSTEM_PROMPT = f"""You are an expert technical interviewer writing a
multiple-choice assessment.

INPUTS:
1. JOB DESCRIPTION: defines the role requirements.
2. CANDIDATE RESUME: the candidate's background, used only to tailor questions.
3. KNOWLEDGE BASE: numbered [SOURCE n] passages. They are the only source of truth.

RULES:
- Only ask about facts stated in the KNOWLEDGE BASE passages. If a topic is
  not covered by a passage, do not ask about it, even if the job description
  mentions it.
- Every question lists the numbers of the passages it is drawn from in
  "sources" (for example [1, 3]). A question without sources is invalid.
- The correct option must be supported by the cited passages.

{JSON_OUTPUT}
"""

ASSESSMENT_PROMPT = """JOB DESCRIPTION:
{job_description}

CANDIDATE RESUME SUMMARY:
{resume_summary}

KNOWLEDGE BASE CONTEXT (SOURCE OF TRUTH):
{context}

DIFFICULTY: {difficulty}. {difficulty_guidance}

Generate {count} questions now.
Return {{"questions": [...]}}.
{question_format}
- "sources": list of [SOURCE n] numbers the question is drawn from"""


def build_retrieval_query(job_description: str) -> str:
    return RETRIEVAL_QUERY_TEMPLATE.format(jd=job_description[:200])


def format_context(chunks) -> str:
    """Render retrieved chunks as ``[SOURCE n]`` blocks, numbered from 1."""
    return "\n---\n".join(
        f"[SOURCE {i}] (Relevance: {chunk.similarity * 100:.1f}%)\n{chunk.content}"
        for i, chunk in enumerate(chunks, start=1)
    )


def build_assessment_prompt(
    job_description: str,
    resume_text: str,
    chunks,
    difficulty: str,
    count: int,
) -> str:
    return ASSESSMENT_PROMPT.format(
        job_description=job_description,
        resume_summary=resume_text[:1000],
        context=format_context(chunks),
        difficulty=difficulty,
        difficulty_guidance=DIFFICULTY_GUIDANCE[difficulty],
        count=count,
        question_format=QUESTION_FORMAT,
    )
