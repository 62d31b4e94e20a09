"""
Script to create the first admin user (needed to read the online-user and
activity analytics). Run this script after running database migrations.

Usage:
    python create_admin.py

Environment Variables (optional):
    ADMIN_EMAIL - Admin email address
    ADMIN_PASSWORD - Admin password (min 6 characters)
    ADMIN_NAME - Admin name
    ADMIN_ROLE - Admin role (super_admin, admin, manager, support)
"""
import sys
from sqlalchemy.orm import Session
from storefront.database import SessionLocal
from storefront.models.admin import Admin, AdminRole
from storefront.utils.security import get_password_hash
from storefront.config import settings

ROLE_MAP = {
    "super_admin": AdminRole.SUPER_ADMIN,
    "admin": AdminRole.ADMIN,
    "manager": AdminRole.MANAGER,
    "support": AdminRole.SUPPORT,
    "1": AdminRole.SUPER_ADMIN,
    "2": AdminRole.ADMIN,
    "3": AdminRole.MANAGER,
    "4": AdminRole.SUPPORT
}


def parse_role(value: str) -> AdminRole:
    return ROLE_MAP.get((value or "").strip().lower(), AdminRole.SUPER_ADMIN)


def create_admin_user(db: Session, email: str, password: str, name: str, role: AdminRole) -> Admin:
    """Insert an admin; raises ValueError when the input is unusable"""
    if not email:
        raise ValueError("Email is required")
    if len(password or "") < 6:
        raise ValueError("Password must be at least 6 characters")
    if db.query(Admin).filter(Admin.email == email).first():
        raise ValueError(f"Admin with email {email} already exists")
    
    admin = Admin(
        email=email,
        password_hash=get_password_hash(password),
        name=name or "Admin",
        role=role,
        is_active=True
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def main():
    """Create the first admin user from settings or prompts"""
    db = SessionLocal()
    
    try:
        try:
            existing_admin = db.query(Admin).first()
        except Exception as e:
            if "no such table" in str(e).lower() or "does not exist" in str(e).lower():
                print("[ERROR] Admin table does not exist!")
                print("   Please run database migrations first:")
                print("   alembic upgrade head")
                return
            raise
        if existing_admin:
            print("[ERROR] Admin user already exists!")
            print(f"   Email: {existing_admin.email}")
            return
        
        print("=" * 50)
        print("Create First Admin User")
        print("=" * 50)
        
        email = settings.ADMIN_EMAIL.strip() or input("Enter admin email: ").strip()
        password = settings.ADMIN_PASSWORD.strip() or input("Enter admin password (min 6 characters): ").strip()
        name = settings.ADMIN_NAME.strip() or input("Enter admin name: ").strip()
        
        role_str = settings.ADMIN_ROLE
        if not role_str or role_str.lower() not in ROLE_MAP:
            print("\nSelect role:")
            print("1. Super Admin (Full access)")
            print("2. Admin")
            print("3. Manager (Analytics access)")
            print("4. Support (No analytics access)")
            role_str = input("Enter role number (1-4) [default: 1]: ").strip() or "1"
        
        admin = create_admin_user(db, email, password, name, parse_role(role_str))
        
        print("\n" + "=" * 50)
        print("[SUCCESS] Admin user created successfully!")
        print("=" * 50)
        print(f"   Email: {admin.email}")
        print(f"   Name: {admin.name}")
        print(f"   Role: {admin.role.value}")
        print(f"   ID: {admin.id}")
        print("\n[TIP] You can now login at: POST /api/admin/auth/login")
        print("=" * 50)
        
    except ValueError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)
    except Exception as e:
        db.rollback()
        print(f"[ERROR] Error creating admin: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
