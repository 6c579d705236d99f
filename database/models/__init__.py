from .base import Base

from .panel_credential import PanelCredential

__all__ = ["Base", "PanelCredential"]
