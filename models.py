from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SQLAlchemyEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship
from database import Base
import enum

# Définition des énumérations pour les rôles et statuts
# Cela garantit que seules les valeurs prédéfinies peuvent être utilisées.
class UserRole(str, enum.Enum):
    admin = "admin"
    manager = "manager"
    executive = "executive"
    telecaller = "telecaller"
    staff = "staff"

class UserStatus(str, enum.Enum):
    active = "active"
    pending = "pending"
    rejected = "rejected"
    blocked = "blocked"

class EnquiryStatus(str, enum.Enum):
    open = "open"
    closed = "closed"

# Statut commun aux leads de job order et aux relances
class TaskStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


# Définition du modèle de données pour la table 'users'
# Le rôle et l'agence déterminent la portée de toutes les requêtes.
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(SQLAlchemyEnum(UserRole), default=UserRole.staff, nullable=False)
    status = Column(SQLAlchemyEnum(UserStatus), default=UserStatus.active, nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    session_version = Column(Integer, default=0, nullable=False)  # incrémenté pour révoquer les autres sessions

    branch = relationship("Branch")


class Enquiry(Base):
    __tablename__ = "enquiries"

    id = Column(Integer, primary_key=True, index=True)
    candidate_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    assigned_to_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    assignment_start_date = Column(Date, nullable=True)
    assignment_end_date = Column(Date, nullable=True)
    status = Column(SQLAlchemyEnum(EnquiryStatus), default=EnquiryStatus.open, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    assigned_to = relationship("User")
    follow_ups = relationship("FollowUp", back_populates="enquiry")


class FollowUp(Base):
    __tablename__ = "follow_ups"

    id = Column(Integer, primary_key=True, index=True)
    enquiry_id = Column(Integer, ForeignKey("enquiries.id"), nullable=False, index=True)
    status = Column(SQLAlchemyEnum(TaskStatus), default=TaskStatus.PENDING, nullable=False)
    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    enquiry = relationship("Enquiry", back_populates="follow_ups")


class JobOrder(Base):
    __tablename__ = "job_orders"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    job_leads = relationship("JobLead", back_populates="job")


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    assigned_to_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)


# Un JobLead relie un job order (portée agence) à un lead (portée assigné)
class JobLead(Base):
    __tablename__ = "job_leads"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("job_orders.id"), nullable=False, index=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    status = Column(SQLAlchemyEnum(TaskStatus), default=TaskStatus.PENDING, nullable=False)

    job = relationship("JobOrder", back_populates="job_leads")
    lead = relationship("Lead")
