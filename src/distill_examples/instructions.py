from retrieve_records.models import RawRecord

TEACHER_BODY_LIMIT = 1000
STUDENT_BODY_LIMIT = 500

TEACHER_INSTRUCTIONS = """You are an expert headline writer for {publication}.
Generate a high-quality, SEO-optimized headline for the following article content. The headline should be:
- Editorial quality and engaging
- SEO-optimized with relevant keywords
- Appropriate for the publication's style
- Between 8-15 words

Article content:
{content}

Generate the headline:"""

STUDENT_INSTRUCTIONS = """Generate a headline for the following article:

Article content:
{content}

Publication: {publication}
Style requirements: Editorial quality, SEO-optimized, engaging"""


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def build_teacher_prompt(record: RawRecord) -> str:
    return TEACHER_INSTRUCTIONS.format(
        publication=record.publication_id,
        content=truncate(record.body, TEACHER_BODY_LIMIT),
    )


def build_student_prompt(record: RawRecord) -> str:
    """Training input. Depends only on the record, never on teacher output."""
    return STUDENT_INSTRUCTIONS.format(
        publication=record.publication_id,
        content=truncate(record.body, STUDENT_BODY_LIMIT),
    )
