"""Turn cleaned records into training examples labelled by a teacher model."""

import logging
from concurrent.futures import ThreadPoolExecutor

from common.errors import TeacherInvocationFailed
from distill_examples.instructions import build_student_prompt, build_teacher_prompt
from distill_examples.models import LabelSource, Provenance, TrainableExample
from distill_examples.teacher import Teacher
from retrieve_records.models import RawRecord

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 5


def _provenance(record: RawRecord, label_source: LabelSource, **kwargs) -> Provenance:
    return Provenance(
        record_id=record.id,
        publication_id=record.publication_id,
        published_at=record.published_at,
        label_source=label_source,
        original_title=record.title,
        attributes=record.attributes,
        **kwargs,
    )


def _ask_teacher(teacher: Teacher, record: RawRecord) -> str:
    try:
        completion = teacher.generate(build_teacher_prompt(record)).strip()
    except Exception as exc:
        raise TeacherInvocationFailed(str(exc) or type(exc).__name__) from exc
    if not completion:
        raise TeacherInvocationFailed("Teacher returned an empty completion")
    return completion


def distill_record(record: RawRecord, teacher: Teacher) -> TrainableExample:
    """Label one record with the teacher, falling back to its original title."""
    student_prompt = build_student_prompt(record)

    try:
        completion = _ask_teacher(teacher, record)
    except TeacherInvocationFailed as exc:
        logger.warning("Teacher failed for record %s, using original title: %s", record.id, exc.reason)
        return TrainableExample(
            input=student_prompt,
            target=record.title,
            provenance=_provenance(
                record,
                LabelSource.ORIGINAL_TITLE,
                teacher_model=teacher.model_id,
                teacher_model_error=exc.reason,
            ),
        )

    return TrainableExample(
        input=student_prompt,
        target=completion,
        provenance=_provenance(record, LabelSource.TEACHER_MODEL, teacher_model=teacher.model_id),
    )


def distill_examples(
    records: list[RawRecord],
    teacher: Teacher,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> list[TrainableExample]:
    """
    Label records in fixed windows of ``concurrency`` concurrent teacher calls.

    Each window finishes before the next one starts and output order matches
    input order. A failing call never fails the batch.

    Args:
        records: Cleaned records, one example is produced per record
        teacher: Teacher model client
        concurrency: Window size and number of worker threads

    Returns:
        List of TrainableExample objects in input order
    """
    if concurrency < 1:
        raise ValueError("concurrency must be >= 1")
    if not records:
        logger.warning("No records to distill")
        return []

    logger.info("Distilling %d records with teacher model %s", len(records), teacher.model_id)

    examples: list[TrainableExample] = []
    with ThreadPoolExecutor(max_workers=concurrency) as executor:
        for start in range(0, len(records), concurrency):
            window = records[start:start + concurrency]
            examples.extend(executor.map(lambda record: distill_record(record, teacher), window))
            logger.info("Processed %d/%d records", len(examples), len(records))

    fallbacks = sum(1 for e in examples if e.provenance.label_source is LabelSource.ORIGINAL_TITLE)
    logger.info("Distillation complete: %d examples (%d title fallbacks)", len(examples), fallbacks)
    return examples


def label_with_titles(records: list[RawRecord]) -> list[TrainableExample]:
    """Build examples that use each record's own title as the label."""
    return [
        TrainableExample(
            input=build_student_prompt(record),
            target=record.title,
            provenance=_provenance(record, LabelSource.ORIGINAL_TITLE),
        )
        for record in records
    ]
