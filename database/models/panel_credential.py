# FILE: database/models/panel_credential.py

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class PanelCredential(Base):
    __tablename__ = "panel_credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # Stored as plain text so rows written before Marzban support ('3x-ui')
    # still load; core.panel_api.models.PanelKind resolves the value.
    panel_type: Mapped[str] = mapped_column(String(50), nullable=False, default="threexui", server_default="threexui")

    api_url: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<PanelCredential(id={self.id}, name='{self.name}', type='{self.panel_type}')>"
