from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "SCB Storefront API"
    DATABASE_URL: str = "sqlite:///./storefront.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7 # 1 week
    LOG_LEVEL: str = "INFO"
    SQL_ECHO: bool = False

    # Razorpay
    RAZORPAY_KEY_ID: str = "rzp_test_placeholder"
    RAZORPAY_KEY_SECRET: str = "rzp_secret_placeholder"

    # Shiprocket
    SHIPROCKET_BASE_URL: str = "https://apiv2.shiprocket.in/v1/external"
    SHIPROCKET_EMAIL: str = "demo@shiprocket.com"
    SHIPROCKET_PASSWORD: str = "demo_password"
    SHIPROCKET_TIMEOUT: float = 10.0

    # Shipping policy
    PICKUP_PINCODE: str = "400001"  # Warehouse location
    FREE_SHIPPING_THRESHOLD: float = 10000
    DEFAULT_SHIPPING_CHARGE: float = 99
    COD_SURCHARGE: float = 50
    DEFAULT_WEIGHT_KG: float = 2

    # Tax
    GST_RATE: float = 0.18

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
