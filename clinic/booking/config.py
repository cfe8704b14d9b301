import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel


class StoreConfig(BaseModel):
    data_dir: Path = Path("data")
    lock_timeout: float = 10.0

    @property
    def appointments_file(self) -> Path:
        return self.data_dir / "appointments.json"


class ClinicInfo(BaseModel):
    name: str = "Maa RDD Aarogya Sadan"
    phone: str = "+91 98350 67876"
    email: str = "info@aarogyasadan.com"
    address: str = "Basudeopur Chaputa, Hajipur, Vaishali, Bihar"


class MailConfig(BaseModel):
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    admin_email: Optional[str] = None
    clinic: ClinicInfo = ClinicInfo()

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host and self.username and self.password)

    @property
    def sender(self) -> str:
        return f"{self.clinic.name} <{self.username}>"


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 5000
    log_level: str = "INFO"


class AppConfig(BaseModel):
    store: StoreConfig = StoreConfig()
    mail: MailConfig = MailConfig()
    server: ServerConfig = ServerConfig()

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "AppConfig":
        """Build configuration from the process environment and an optional .env file."""
        load_dotenv(env_file)
        defaults = ClinicInfo()
        return cls(
            store=StoreConfig(
                data_dir=Path(os.getenv("CLINIC_DATA_DIR", "data")),
                lock_timeout=float(os.getenv("CLINIC_LOCK_TIMEOUT", "10")),
            ),
            mail=MailConfig(
                smtp_host=os.getenv("SMTP_HOST") or None,
                smtp_port=int(os.getenv("SMTP_PORT", "587")),
                username=os.getenv("EMAIL_USER") or None,
                password=os.getenv("EMAIL_PASSWORD") or None,
                admin_email=os.getenv("ADMIN_EMAIL") or None,
                clinic=ClinicInfo(
                    name=os.getenv("CLINIC_NAME", defaults.name),
                    phone=os.getenv("CLINIC_PHONE", defaults.phone),
                    email=os.getenv("CLINIC_EMAIL", defaults.email),
                    address=os.getenv("CLINIC_ADDRESS", defaults.address),
                ),
            ),
            server=ServerConfig(
                host=os.getenv("HOST", "127.0.0.1"),
                port=int(os.getenv("PORT", "5000")),
                log_level=os.getenv("LOG_LEVEL", "INFO"),
            ),
        )


class ClientConfig(BaseModel):
    api_url: str = "http://localhost:5000/api"
    success_banner_seconds: float = 7.0
    request_timeout: float = 10.0

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ClientConfig":
        load_dotenv(env_file)
        return cls(api_url=os.getenv("CLINIC_API_URL", "http://localhost:5000/api").rstrip("/"))
