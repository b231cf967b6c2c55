from __future__ import annotations

import secrets
import string
from typing import Callable

from utils import TokenGenerationExhausted


TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
TOKEN_LENGTH = 12
MAX_ATTEMPTS = 10


class TokenGenerator:
    """
    Opaque onboarding tokens.

    `exists` is the repository's uniqueness probe; nothing is persisted here, the
    caller stores the token together with the new session.
    """

    def __init__(
        self,
        exists: Callable[[str], bool],
        *,
        length: int = TOKEN_LENGTH,
        max_attempts: int = MAX_ATTEMPTS,
        choice: Callable[[str], str] = secrets.choice,
    ):
        self._exists = exists
        self.length = int(length)
        self.max_attempts = int(max_attempts)
        self._choice = choice

    def random_token(self) -> str:
        return "".join(self._choice(TOKEN_ALPHABET) for _ in range(self.length))

    def generate_unique_token(self) -> str:
        for _ in range(self.max_attempts):
            token = self.random_token()
            if not self._exists(token):
                return token
        raise TokenGenerationExhausted()
