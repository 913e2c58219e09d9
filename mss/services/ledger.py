"""
services/ledger.py

Token ledger: bookkeeping of issued access tokens.

Every issued access token gets a row. Before a login / refresh /
verification records its new token, all earlier tokens of the user are
retired (expired=True, revoked=True), so only the newest lineage stays
usable.

Design notes:
- no HTTP / FastAPI dependencies
- flush only; the router owns the commit
- revoke-then-record is not atomic across concurrent requests for the
  same user; the last writer wins

Related files:
- mss.repositories.token : queries
- mss.core.gate          : reads the ledger per request
- mss.services.auth      : records / revokes on each issuance

"""

import logging

from sqlalchemy.orm import Session

from mss.models.token import Token, TokenType
from mss.models.user import User
from mss.repositories import token as token_repo

logger = logging.getLogger(__name__)


class TokenLedger:
    def __init__(self, db: Session):
        self.db = db

    def lookup(self, token: str) -> Token | None:
        return token_repo.find_by_token(self.db, token)

    def record(self, user: User, token: str) -> Token:
        return token_repo.add_token(
            self.db,
            Token(
                user_id=user.id,
                token=token,
                token_type=TokenType.BEARER,
                expired=False,
                revoked=False,
            ),
        )

    def revoke_all_user_tokens(self, user: User) -> int:
        valid_tokens = token_repo.find_all_valid_tokens_by_user(self.db, user.id)
        if not valid_tokens:
            return 0
        for record in valid_tokens:
            record.expired = True
            record.revoked = True
        self.db.add_all(valid_tokens)
        self.db.flush()
        logger.debug("Revoked %d token(s) for user_id=%s", len(valid_tokens), user.id)
        return len(valid_tokens)

    def revoke(self, token: str) -> bool:
        record = self.lookup(token)
        if record is None:
            return False
        record.expired = True
        record.revoked = True
        self.db.flush()
        return True
