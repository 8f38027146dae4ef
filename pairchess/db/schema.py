"""Database tables / schema

users(id)
games(id, w_id, b_id, ended, winner, termination, fen, start_fen)
    winner:      null - draw (or not over), 0 - black, 1 - white
    termination: null - not over, 0 - timeout, 1 - resignation, 2 - checkmate, 3 - draw rule
moves(game_id, ply, uci)
"""

from typing import Optional

from sqlalchemy import ForeignKey
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from pairchess.core.shared_types import Termination

TERMINATION_CODES: dict[Termination, int] = {
    Termination.TIMEOUT: 0,
    Termination.RESIGNATION: 1,
    Termination.CHECKMATE: 2,
    Termination.DRAW_RULE: 3,
}
CODE_TO_TERMINATION: dict[int, Termination] = {code: termination for termination, code in TERMINATION_CODES.items()}


class Base(DeclarativeBase):
    pass


class DBUser(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)


class DBGame(Base):
    __tablename__ = "games"
    id: Mapped[int] = mapped_column(primary_key=True)
    w_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    b_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    ended: Mapped[bool] = mapped_column(default=False)
    winner: Mapped[Optional[bool]]
    termination: Mapped[Optional[int]]
    fen: Mapped[str]
    # null: the standard starting position
    start_fen: Mapped[Optional[str]]


class DBMove(Base):
    __tablename__ = "moves"
    # (game_id, ply) as primary key: a second write for the same ply is rejected by the database
    game_id: Mapped[int] = mapped_column(ForeignKey("games.id"), primary_key=True)
    ply: Mapped[int] = mapped_column(primary_key=True, autoincrement=False)
    uci: Mapped[str]
