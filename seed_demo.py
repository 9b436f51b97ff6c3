# seed_demo.py

from decimal import Decimal

from sqlmodel import Session

from storefront.core.auth import create_access_token
from storefront.database import create_db_and_tables, engine
from storefront.models.product import Brand, Product
from storefront.models.user import User
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.user_repo import UserRepository

DEMO_PRODUCTS = [
    ("Nike", "Air Max 90", "Classic comfort sneakers.", "129.00", 60, "Footwear"),
    ("Levi's", "511 Slim Jeans", "Slim fit denim.", "59.00", 100, "Fashion"),
    ("Sony", "WH-1000XM5", "Noise cancelling headphones.", "349.00", 40, "Accessories"),
]


def main():
    create_db_and_tables()
    products = ProductRepository()
    users = UserRepository()

    with Session(engine) as session:
        for brand_name, title, description, price, stock, category in DEMO_PRODUCTS:
            brand = products.get_brand_by_name(session, brand_name) or products.create_brand(
                session, Brand(name=brand_name)
            )
            product = products.create(
                session,
                Product(
                    title=title,
                    description=description,
                    brand_id=brand.id,
                    price=Decimal(price),
                    stock_on_hand=stock,
                    category_name=category,
                ),
            )
            print(f"product {product.id}  {title}  stock={stock}")

        for email, name, role in [
            ("customer@example.com", "Demo Customer", "user"),
            ("admin@example.com", "Demo Admin", "admin"),
        ]:
            user = users.get_by_email(session, email) or users.create(
                session, User(email=email, name=name, role=role)
            )
            print(f"{role:5} {email}  token={create_access_token(user.id)}")


if __name__ == "__main__":
    main()
