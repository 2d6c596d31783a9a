from .catalog import Category, Tag, Product, product_tags
from .reference import Location, Supplier
from .users import User
from .inventory import Stock, StockMovement
from .documents import Purchase, Sale, Transfer
from .counts import InventorySession, InventoryLine
from .recipes import Recipe, RecipeIngredient
from .audit import ActivityLog

__all__ = [
    'Category', 'Tag', 'Product', 'product_tags',
    'Location', 'Supplier',
    'User',
    'Stock', 'StockMovement',
    'Purchase', 'Sale', 'Transfer',
    'InventorySession', 'InventoryLine',
    'Recipe', 'RecipeIngredient',
    'ActivityLog',
]
