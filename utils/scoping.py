"""
Règles de visibilité par rôle, partagées par les compteurs du tableau de bord et
par toutes les listes (enquêtes, relances, leads de job orders).

    admin              -> tout
    manager + agence   -> limité à son agence
    autres             -> uniquement ce qui lui est assigné

Un manager sans agence est traité comme les autres rôles (assignations personnelles).
"""
import enum

from sqlalchemy import true

import models


class Scope(str, enum.Enum):
    all = "all"
    branch = "branch"
    self = "self"


def resolve_scope(user: models.User) -> Scope:
    if user.role == models.UserRole.admin:
        return Scope.all
    if user.role == models.UserRole.manager and user.branch_id:
        return Scope.branch
    return Scope.self


def enquiry_filter(user: models.User):
    scope = resolve_scope(user)
    if scope == Scope.all:
        return true()
    if scope == Scope.branch:
        return models.Enquiry.branch_id == user.branch_id
    return models.Enquiry.assigned_to_user_id == user.id


def job_lead_filter(user: models.User):
    scope = resolve_scope(user)
    if scope == Scope.all:
        return true()
    if scope == Scope.branch:
        return models.JobLead.job.has(models.JobOrder.branch_id == user.branch_id)
    return models.JobLead.lead.has(models.Lead.assigned_to_user_id == user.id)


def follow_up_filter(user: models.User):
    scope = resolve_scope(user)
    if scope == Scope.all:
        return true()
    if scope == Scope.branch:
        return models.FollowUp.enquiry.has(models.Enquiry.branch_id == user.branch_id)
    return models.FollowUp.enquiry.has(models.Enquiry.assigned_to_user_id == user.id)
