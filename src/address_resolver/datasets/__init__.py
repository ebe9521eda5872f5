from .address_points import AddressPointsLoader
from .street_names import StreetNamesLoader

__all__ = ["AddressPointsLoader", "StreetNamesLoader"]
