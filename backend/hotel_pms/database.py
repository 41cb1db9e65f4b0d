"""
数据库配置 - SQLAlchemy 持久化层
数据库仅作为持久化层，业务规则全部在服务层实现
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from hotel_pms.config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

connect_args = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=connect_args,
    echo=settings.DEBUG
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """依赖注入：获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """初始化数据库表"""
    from hotel_pms.models import ontology  # noqa
    Base.metadata.create_all(bind=engine)
