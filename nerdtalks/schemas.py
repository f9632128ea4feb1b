from typing import Annotated, Optional

from pydantic import BaseModel, EmailStr, Field

Text = Annotated[str, Field(min_length=1)]


#################
# Pydantic Models
#################
class UserCreate(BaseModel):
    uid: Text
    name: Text
    email: EmailStr
    avatar: Optional[str] = None

class RoleUpdate(BaseModel):
    role: Text

class PostCreate(BaseModel):
    title: Text
    content: Text
    tag: Text

class VoteRequest(BaseModel):
    type: Text
    # Display hint only, the voter is always the verified identity
    email: Optional[str] = None

class CommentCreate(BaseModel):
    postId: Text
    content: Text

class ReportCreate(BaseModel):
    commentId: Text
    postId: Text
    reason: Text
    commentContent: Text
    # Display hint only, the reporter is always the verified identity
    reportedBy: Optional[str] = None

class StatusUpdate(BaseModel):
    status: Text

class TagCreate(BaseModel):
    name: Text

class AnnouncementCreate(BaseModel):
    title: Text
    description: Text
