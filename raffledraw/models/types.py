"""Column types shared by the raffle store tables."""

from sqlalchemy import BigInteger, Integer, Numeric

# SQLite only autoincrements INTEGER primary keys.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")

MONEY = Numeric(18, 4)
"""Fund and prize amounts."""

PERCENT = Numeric(9, 4)
"""Fund and prize percentages, 0 to 100."""
