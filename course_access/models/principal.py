from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.  The
    identity service owns users; here ``user_id`` is the opaque ``sub``
    claim and is never looked up.
    """

    user_id: str
