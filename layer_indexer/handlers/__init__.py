# layer_indexer/handlers/__init__.py

from .base import BaseHandler
from .control_token import ControlTokenHandler
