"""
Pydantic schemas for the RBAC store.

Response models for permissions, roles and assignments.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# Permission Schemas
# ============================================================================

class PermissionResponse(BaseModel):
    """Schema for permission response."""
    id: str
    name: str = Field(..., description="Unique permission name")
    description: Optional[str] = Field(None, description="Permission description")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Role Schemas
# ============================================================================

class RoleResponse(BaseModel):
    """Schema for role response."""
    id: str
    name: str = Field(..., description="Unique role name")
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleWithPermissions(RoleResponse):
    """Schema for role with its assigned permissions."""
    permissions: List[PermissionResponse] = []
    permission_names: List[str] = []

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Assignment Schemas
# ============================================================================

class AssignmentResponse(BaseModel):
    """Schema for a role-permission assignment."""
    id: str
    role_id: str
    permission_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
