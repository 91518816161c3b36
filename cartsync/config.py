"""Configuration settings for the cart synchronization service."""
from pydantic_settings import BaseSettings
from pydantic import Field
from dotenv import load_dotenv

# Ensure .env values are loaded into os.environ before settings are built.
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Local durable store for the persisted cart
    database_url: str = Field(default="sqlite:///data/cart.db", alias="DATABASE_URL")
    # Remote cart API
    cart_api_base_url: str = Field(default="http://localhost:5000/api/v1", alias="CART_API_BASE_URL")
    cart_api_token: str = Field(default="", alias="CART_API_TOKEN")
    # Gateway request timeout in seconds
    cart_api_timeout: float = Field(default=10.0, alias="CART_API_TIMEOUT")
    # Key the serialized line list is stored under
    cart_storage_key: str = Field(default="saved_cart", alias="CART_STORAGE_KEY")
    # Seconds before a transient "item added" event is cleared
    add_event_clear_delay: float = Field(default=0.8, alias="ADD_EVENT_CLEAR_DELAY")
    # Only this user type gets a server-backed cart
    cart_eligible_user_type: str = Field(default="Customer", alias="CART_ELIGIBLE_USER_TYPE")
    project_name: str = "Cart Sync"
    api_version: str = "v1"
    
    class Config:
        env_file = ".env"
        case_sensitive = False
        populate_by_name = True


settings = Settings()
