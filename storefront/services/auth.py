from datetime import datetime, timedelta
from typing import Optional
from sqlmodel import Session, select
from passlib.context import CryptContext
from jose import jwt

from storefront.models.user import User
from storefront.core.config import settings
from storefront.core.exceptions import InvalidInput

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

class AuthService:
    def __init__(self, session: Session):
        self.session = session

    def get_password_hash(self, password: str) -> str:
        return pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            # Use the default from config (7 days)
            expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        return encoded_jwt

    def get_user_by_email(self, email: str) -> Optional[User]:
        # Emails are stored lower-case
        return self.session.exec(select(User).where(User.email == email.strip().lower())).first()

    def register_user(self, email: str, password: str, name: str, mobile: Optional[str] = None) -> User:
        if self.get_user_by_email(email):
            raise InvalidInput("Email already registered")

        user = User(
            email=email.strip().lower(),
            name=name,
            mobile=mobile,
            password_hash=self.get_password_hash(password),
            is_active=True,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def authenticate_user(self, email: str, password: str) -> tuple[Optional[User], Optional[str]]:
        user = self.get_user_by_email(email)
        if not user or not self.verify_password(password, user.password_hash):
            return None, "Invalid email or password"
        if not user.is_active:
            return None, "Your account has been deactivated"
        return user, None
