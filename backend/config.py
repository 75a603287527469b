from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    allowed_origins: str = "http://localhost:3001"
    reload_on_startup: bool = True

    sheet_api_base_url: str = "https://sheetdb.io/api/v1/8pmdh33s9fvy8"
    sheet_request_timeout_seconds: float = 20.0
    tests_sheet: str = "Tests"
    patients_sheet: str = "Patients"
    tokens_sheet: str = "LinkTokens"

    test_column_prefix: str = ""
    completed_column_suffix: str = "_FEITO"
    affirmative_token: str = "sim"
    panel_location: str = ""


settings = Settings()
