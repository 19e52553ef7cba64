"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Sponsor owns assets, requests, assignments and affiliations via sponsor_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
      or alembic autogenerate runs
    - No ORM relationships: async lazy loads are forbidden, views use explicit joins
"""

from assetverse.models.sponsor import Sponsor  # noqa: F401
from assetverse.models.member import Member  # noqa: F401
from assetverse.models.asset import Asset  # noqa: F401
from assetverse.models.assignment import Assignment  # noqa: F401
from assetverse.models.asset_request import AssetRequest  # noqa: F401
from assetverse.models.affiliation import Affiliation  # noqa: F401
