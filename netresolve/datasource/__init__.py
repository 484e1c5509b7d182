from netresolve.datasource.base import BaseNetworkApi
from netresolve.datasource.campus import CampusControllerApi

__all__ = ["BaseNetworkApi", "CampusControllerApi"]
