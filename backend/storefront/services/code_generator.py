# Overview: Random numeric code generation for collection and verification codes.

from __future__ import annotations

import secrets
from typing import Iterable


class CodeGenerator:
    """
    Zero-padded random numeric codes.

    Uses secrets (not random): codes authorize handing over goods.
    """

    def random_n_digit_code(self, n: int, exclude: Iterable[str] = ()) -> str:
        if n < 1:
            raise ValueError("Code length must be at least 1")
        excluded = {code for code in exclude if code}
        space = 10 ** n
        if len([c for c in excluded if len(c) == n and c.isdigit()]) >= space:
            raise ValueError(f"No {n}-digit codes left to generate")
        while True:
            code = f"{secrets.randbelow(space):0{n}d}"
            if code not in excluded:
                return code
