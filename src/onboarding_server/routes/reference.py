"""Reference data endpoints — chains, questionnaires, programs, levels.

Read-only views of the loaded content.  No user identity is required since
this is public reference information.
"""

from fastapi import APIRouter, Depends

from onboarding_engine.content import YamlContentStore
from onboarding_engine.models.chain import ChainDefinition

from onboarding_server.dependencies import get_store

router = APIRouter(prefix="/reference", tags=["reference"])


@router.get("/chains")
def list_chains(
    store: YamlContentStore = Depends(get_store),
) -> list[ChainDefinition]:
    """Return every chain definition with its steps."""
    return list(store.chains.values())


@router.get("/questionnaires")
def list_questionnaires(
    store: YamlContentStore = Depends(get_store),
) -> list[dict]:
    """Return every partition with its question count and entry question."""
    items = []
    for partition in store.list_partitions():
        question_ids = store.question_ids(partition)
        first = next(
            (qid for qid in question_ids if store.questions[qid].is_first_question),
            None,
        )
        items.append({
            "id": partition,
            "question_count": len(question_ids),
            "first_question_id": first,
        })
    return items


@router.get("/programs")
def list_programs(
    store: YamlContentStore = Depends(get_store),
) -> list[dict]:
    return [
        {
            **store.resolve_program(program.id),
            "is_master": program.is_master,
            "child_program_ids": program.child_program_ids,
        }
        for program in store.programs.values()
    ]


@router.get("/levels")
def list_levels(
    store: YamlContentStore = Depends(get_store),
) -> list[dict]:
    levels = sorted(store.levels.values(), key=lambda level: level.order)
    return [store.resolve_level(level.id) for level in levels]
