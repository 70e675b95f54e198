"""
                        Services Module

Business logic behind the API routes. Services with an external
dependency have a Mock (development) and a Real (production)
implementation behind a cached factory.

Services:
    - order_intake: Order validation, repricing and persistence
    - rate_limit: Order intake throttle (in-memory or Redis)
    - imaging: Menu image generation (mock or AI gateway)
    - menu_images: Generate, store and attach menu images
    - storage: Bucketed object storage
    - reporting: Financial aggregation
    - inventory: Stock levels
    - excel_manager: Locked Excel exports
"""

from app.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
