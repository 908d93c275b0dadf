from datetime import time
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_clock(value: str) -> time:
    """Accepts "HH:MM" or "HH:MM:SS"."""
    return time.fromisoformat(value.strip())


class Settings(BaseSettings):
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "roomchecker"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str | None = None
    ENV: str = "dev"

    # External timetable API
    TIMETABLE_API_URL: str | None = "https://cis.fh-joanneum.at/img/zimmer_plan.php"
    TIMETABLE_HTTP_TIMEOUT: int = 8
    TIMETABLE_USER_AGENT: str = "RoomChecker/1.0 (+https://github.com/room-checker/room-checker)"

    # Civil time used for every stored and queried instant
    TIMEZONE: str = "Europe/Vienna"

    # Window covered by the generated FREE/BUSY timeline
    OPENING_HOURS_START: str = "00:00"
    OPENING_HOURS_END: str = "23:59:59"

    # Window used for snapshot metrics (free_until, end of day)
    WORKING_DAY_START: str = "08:00:00"
    WORKING_DAY_END: str = "18:15:00"

    DEFAULT_BUILDING: str = "AP152"
    BUILDINGS: list[str] = [
        "AP152",
        "AP147",
        "AP149",
        "AP154",
        "EA11",
        "EA9",
        "EA13",
        "ES30i",
        "ES7a",
        "ES7b",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)

    @property
    def allowed_buildings(self) -> set[str]:
        return {code.strip().upper() for code in self.BUILDINGS if code.strip()}

    def is_allowed_building(self, code: str) -> bool:
        return (code or "").strip().upper() in self.allowed_buildings

    @property
    def opening_start(self) -> time:
        return parse_clock(self.OPENING_HOURS_START)

    @property
    def opening_end(self) -> time:
        return parse_clock(self.OPENING_HOURS_END)

    @property
    def working_day_start(self) -> time:
        return parse_clock(self.WORKING_DAY_START)

    @property
    def working_day_end(self) -> time:
        return parse_clock(self.WORKING_DAY_END)


settings = Settings()
