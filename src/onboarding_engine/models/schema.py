"""Reference constants loaded from ``v1/const/*.yaml``.

Programs and levels are the targets of terminal payloads: an
``AnswerResult`` names a ``program_id`` and a ``level_id`` defined here.
"""

from typing import List, Optional

from pydantic import BaseModel


class ProgramConst(BaseModel):
    """A training program.

    Master programs (``is_master``) never receive a level directly; their
    children's levels arrive through ``master_program_sub_levels``.
    """

    id: str
    name: str
    name_he: Optional[str] = None
    is_master: bool = False
    child_program_ids: List[str] = []


class LevelConst(BaseModel):
    """A fitness level; ``order`` ranks levels from easiest (1) upwards."""

    id: str
    order: int
    name: str
    name_he: Optional[str] = None
