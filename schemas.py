from pydantic import BaseModel, EmailStr, Field
from typing import Any, List, Optional
from enum import Enum
from datetime import date, datetime

# Enum pour les rôles et statuts, miroir de models.py
class UserRole(str, Enum):
    admin = "admin"             # Administrateur
    manager = "manager"         # Responsable d'agence
    executive = "executive"     # Chargé de clientèle
    telecaller = "telecaller"   # Téléconseiller
    staff = "staff"             # Personnel (rôle par défaut)

class UserStatus(str, Enum):
    active = "active"
    pending = "pending"
    blocked = "blocked"
    rejected = "rejected"

class EnquiryStatus(str, Enum):
    open = "open"
    closed = "closed"

class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

# --- Schémas pour les Agences ---

class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1)
    is_active: bool = True

class Branch(BranchCreate):
    id: int

    class Config:
        from_attributes = True

# --- Schémas pour les Utilisateurs ---

class UserBase(BaseModel):
    name: str
    email: EmailStr
    role: UserRole
    status: UserStatus = UserStatus.active
    branch_id: Optional[int] = None

# Schéma pour la création d'utilisateur par un admin (inclut le mot de passe et sa confirmation)
class UserCreate(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=8)
    role: UserRole
    branch_id: int
    status: UserStatus = UserStatus.active

class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    branch_id: Optional[int] = None

# Schéma pour la lecture d'un utilisateur (réponse API)
class User(UserBase):
    id: int

    class Config:
        from_attributes = True

# Schéma pour la mise à jour du rôle
class UserRoleUpdate(BaseModel):
    role: UserRole

# Utilisateur proposé dans la boîte de dialogue d'assignation
class AssignableUser(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: UserRole

    class Config:
        from_attributes = True

# --- Schémas pour le Profil ---

class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr

class ChangePassword(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=8)
    revoke_other_sessions: bool = False

# --- Schémas pour les Enquêtes ---

class EnquiryCreate(BaseModel):
    candidate_name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    branch_id: Optional[int] = None

class Enquiry(BaseModel):
    id: int
    candidate_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    branch_id: Optional[int] = None
    assigned_to_user_id: Optional[int] = None
    assignment_start_date: Optional[date] = None
    assignment_end_date: Optional[date] = None
    status: EnquiryStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Tous les champs sont optionnels: l'ordre des messages d'erreur est géré par le routeur
class AssignmentRequest(BaseModel):
    enquiry_id: Optional[int] = None
    enquiry_ids: Optional[List[int]] = None
    user_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

class ActionResult(BaseModel):
    success: bool
    message: Optional[str] = None

# --- Schémas pour les Relances et Job Orders ---

class FollowUp(BaseModel):
    id: int
    enquiry_id: int
    status: TaskStatus
    due_date: Optional[date] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

class JobLead(BaseModel):
    id: int
    job_id: int
    lead_id: int
    status: TaskStatus
    job_title: Optional[str] = None
    lead_name: Optional[str] = None

class ManagerOption(BaseModel):
    id: int
    name: Optional[str] = None
    email: str

    class Config:
        from_attributes = True

class BranchOption(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True

class PendingJobOrdersPage(BaseModel):
    user_role: str
    user_id: int
    branches: List[BranchOption]
    available_managers: List[ManagerOption]
    pending_leads: List[JobLead]

# --- Schémas pour le Tableau de bord ---

class DashboardCounts(BaseModel):
    enquiries: int = 0
    job_orders_pending: int = 0
    follow_ups: int = 0

# --- Schémas pour l'Authentification ---

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenWithUser(Token):
    user: User

# --- Schémas pour les Propositions (API externe) ---

class ProposalStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    # Libellés utilisés par l'interface
    SENT = "SUBMITTED"
    ACCEPTED = "APPROVED"

# Les lignes n'ont pas d'id: la mise à jour des lignes se fait par suppression puis recréation
class ProposalItemIn(BaseModel):
    description: str
    quantity: float
    unit_price: float = Field(..., alias="unitPrice")

    class Config:
        populate_by_name = True

class ProposalCreate(BaseModel):
    client_name: str = Field(..., alias="clientName")
    client_email: Optional[str] = Field(None, alias="clientEmail")
    client_phone: Optional[str] = Field(None, alias="clientPhone")
    lead_id: Optional[str] = Field(None, alias="leadId")
    items: Optional[List[ProposalItemIn]] = None

    class Config:
        populate_by_name = True

class ProposalUpdate(BaseModel):
    client_name: Optional[str] = Field(None, alias="clientName")
    client_email: Optional[str] = Field(None, alias="clientEmail")
    client_phone: Optional[str] = Field(None, alias="clientPhone")
    status: Optional[ProposalStatus] = None
    items: Optional[List[ProposalItemIn]] = None

    class Config:
        populate_by_name = True

class ProposalStatusChange(BaseModel):
    status: ProposalStatus

# Forme uniforme retournée par toutes les actions sur les propositions
class ProposalActionResult(BaseModel):
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None

class ProposalApiConfig(BaseModel):
    PROPOSAL_API_URL: str
    JWT_SECRET: Optional[str] = None
