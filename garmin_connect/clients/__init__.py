from garmin_connect.clients.base import BaseClient
from garmin_connect.clients.http import HttpClient
from garmin_connect.clients.transfer import TransferHandler
from garmin_connect.clients.garmin import GarminConnect

__all__ = ['BaseClient', 'HttpClient', 'TransferHandler', 'GarminConnect']
