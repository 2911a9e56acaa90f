"""Feature catalog readers.

The generator only ever reads the catalog through the ``FeatureCatalog``
protocol, so persistence can be swapped freely::

    from starterkit.catalog import InMemoryCatalog

    catalog = InMemoryCatalog.from_json("catalog.json")
    features = await catalog.find_features("starter", ["auth.basic"])
"""

from starterkit.catalog.base import FeatureCatalog
from starterkit.catalog.http import HttpFeatureCatalog
from starterkit.catalog.memory import InMemoryCatalog

__all__ = [
    "FeatureCatalog",
    "HttpFeatureCatalog",
    "InMemoryCatalog",
]
