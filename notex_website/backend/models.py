from typing import List, Optional
from pydantic import BaseModel, EmailStr

class UserCreds(BaseModel):
    email: EmailStr
    password: str

class NoteData(BaseModel):
    """Create body. ``content`` is storage form, as produced by the editor."""
    title: str = ""
    content: str = ""
    attachments: List[str] = []

class NoteUpdate(BaseModel):
    """Update body. Omitted or blank title/content leave the stored value in place."""
    title: Optional[str] = None
    content: Optional[str] = None
    attachments: Optional[List[str]] = None

class NoteOut(BaseModel):
    id: str
    title: str
    content: str
    attachments: List[str] = []
    created_time: str
    updated_time: str

class UserResponse(BaseModel):
    success: bool
    user_id: str
    message: str = "User registered successfully"

class LoginResponse(BaseModel):
    success: bool
    token: str
    message: str = "Login successful"

class NoteResponse(BaseModel):
    success: bool
    note: NoteOut
    message: str = "Note operation successful"

class NotesListResponse(BaseModel):
    success: bool
    notes: List[NoteOut]
    count: int

class MessageResponse(BaseModel):
    success: bool
    message: str
