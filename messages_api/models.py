from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime, Integer, String, func

Base = declarative_base()


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column("texto", String(255), nullable=False)
    timestamp = Column("fecha", DateTime, server_default=func.current_timestamp())  # set by the database
