"""Pydantic schemas for the Web API.

Request bodies and response models for accounts, courses, progress,
blog, messaging, notifications and AI practice.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from telxtab.ai.question_generator import MAX_QUESTIONS


class LanguageStyle(str, Enum):
    formal = "formal"
    informal = "informal"


class NotificationType(str, Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"
    achievement = "achievement"


class PostStatus(str, Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class ExerciseType(str, Enum):
    multiple_choice = "multiple_choice"
    matching = "matching"


# =============================================================================
# AUTH SCHEMAS
# =============================================================================


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=1, max_length=200)
    username: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(default="", max_length=100)


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=200)
    password: str = Field(..., max_length=200)


class ForgotPasswordRequest(BaseModel):
    email: str = Field(..., max_length=200)


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=1, max_length=200)


# =============================================================================
# PROFILE SCHEMAS
# =============================================================================


class RankResponse(BaseModel):
    name: str
    min_xp: int
    color: str
    icon: str


class XPProgressResponse(BaseModel):
    current: int
    next: int
    percentage: int


class PublicProfileResponse(BaseModel):
    """Profile fields visible to other users."""

    id: str
    username: str
    full_name: str
    bio: str
    avatar_url: str | None = None
    xp: int
    is_admin: bool = False
    learning_languages: list[str] = Field(default_factory=list)
    preferred_language: str = ""
    created_at: str


class ProfileResponse(PublicProfileResponse):
    """The caller's own profile."""

    email: str
    is_banned: bool = False
    study_seconds: int = 0
    rank: RankResponse
    xp_progress: XPProgressResponse


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: str
    profile: ProfileResponse


class ProfileUpdate(BaseModel):
    """Editable profile fields; omitted fields are left unchanged."""

    full_name: str | None = Field(default=None, max_length=100)
    username: str | None = Field(default=None, min_length=1, max_length=50)
    bio: str | None = Field(default=None, max_length=1000)
    learning_languages: list[str] | None = None
    preferred_language: str | None = Field(default=None, max_length=50)


class FollowStatsResponse(BaseModel):
    followers: int
    following: int


class ProfileViewResponse(BaseModel):
    profile: PublicProfileResponse
    rank: RankResponse
    stats: FollowStatsResponse
    is_following: bool


class ProfileStatsResponse(BaseModel):
    followers: int
    following: int
    messages_sent: int
    study_hours: float
    xp: int
    rank: RankResponse


class StreakResponse(BaseModel):
    user_id: str
    current_streak: int
    longest_streak: int
    updated_at: str


class StudyTimeRequest(BaseModel):
    seconds: int


class StudyTimeResponse(BaseModel):
    total_seconds: int
    study_hours: float
    formatted: str


class SuggestionResponse(PublicProfileResponse):
    match_score: float
    match_reason: str


class LeaderboardEntry(BaseModel):
    position: int
    id: str
    username: str
    full_name: str
    avatar_url: str | None = None
    xp: int
    rank: RankResponse


class ActivityEntry(BaseModel):
    lesson_id: str
    course_id: str
    lesson_title: str
    course_title: str
    course_language: str
    progress: int
    status: str
    duration_minutes: int
    last_watched_at: str


class DashboardResponse(BaseModel):
    profile: ProfileResponse
    streak: StreakResponse
    leaderboard: list[LeaderboardEntry]
    recent_activity: list[ActivityEntry]


class CertificateEntry(BaseModel):
    course_id: str
    course_title: str
    language: str
    level: str
    total_lessons: int
    lessons_completed: int
    completion_percentage: int
    completed_at: str | None = None
    is_completed: bool


class CertificatesResponse(BaseModel):
    completed: list[CertificateEntry]
    in_progress: list[CertificateEntry]


# =============================================================================
# BLOG SCHEMAS
# =============================================================================


class BlogPostCreate(BaseModel):
    title: str = Field(..., max_length=200)
    content: str
    excerpt: str = Field(default="", max_length=500)
    cover_image_url: str = Field(default="", max_length=500)
    tags: list[str] = Field(default_factory=list)
    status: PostStatus = PostStatus.draft


class BlogStatusUpdate(BaseModel):
    status: PostStatus


class BlogAuthor(BaseModel):
    id: str
    username: str
    full_name: str
    avatar_url: str | None = None


class BlogPostResponse(BaseModel):
    id: str
    title: str
    slug: str
    content: str
    excerpt: str
    cover_image_url: str
    author_id: str | None = None
    status: str
    published_at: str | None = None
    tags: list[str] = Field(default_factory=list)
    read_time: int
    views: int
    created_at: str
    updated_at: str


class BlogPostDetail(BlogPostResponse):
    author: BlogAuthor | None = None
    likes_count: int = 0
    comments_count: int = 0
    is_liked: bool = False


class LikeResponse(BaseModel):
    liked: bool
    likes_count: int


class CommentCreate(BaseModel):
    content: str = Field(..., max_length=2000)


class CommentResponse(BaseModel):
    id: str
    post_id: str
    user_id: str
    content: str
    created_at: str
    username: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None


# =============================================================================
# COURSE SCHEMAS
# =============================================================================


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    language: str = "English"
    level: str = "beginner"
    is_public: bool = True


class CourseUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    language: str | None = None
    level: str | None = None
    is_public: bool | None = None


class CourseResponse(BaseModel):
    id: str
    title: str
    description: str
    language: str
    level: str
    thumbnail_path: str
    thumbnail_url: str | None = None
    is_public: bool
    created_at: str
    lesson_count: int = 0
    total_duration: int = 0


class SectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    order_index: int = 0


class SectionResponse(BaseModel):
    id: str
    course_id: str
    title: str
    order_index: int


class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    section_id: str | None = None
    description: str = ""
    topic: str = ""
    duration: int = Field(default=0, ge=0)
    order_index: int = 0


class LessonUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    section_id: str | None = None
    description: str | None = None
    topic: str | None = None
    duration: int | None = Field(default=None, ge=0)
    order_index: int | None = None


class LessonResponse(BaseModel):
    id: str
    course_id: str
    section_id: str | None = None
    title: str
    description: str
    topic: str
    video_path: str
    video_url: str | None = None
    duration: int
    order_index: int
    created_at: str


class ProgressResponse(BaseModel):
    id: str
    user_id: str
    course_id: str
    lesson_id: str
    progress_percent: int
    completed: bool
    xp_awarded: bool
    last_watched_at: str


class CourseOverviewResponse(BaseModel):
    course: CourseResponse
    sections: list[SectionResponse]
    lessons: list[LessonResponse]
    is_enrolled: bool
    progress: list[ProgressResponse]


class MatchingPair(BaseModel):
    left: str
    right: str


class ExerciseCreate(BaseModel):
    type: ExerciseType
    question: str = Field(..., min_length=1)
    lesson_id: str | None = None
    options: list[str] = Field(default_factory=list)
    pairs: list[MatchingPair] = Field(default_factory=list)
    correct_answer: str = ""
    explanation: str = ""
    order_index: int = 0


class ExerciseResponse(BaseModel):
    """Exercise as shown to learners (no correct answer)."""

    id: str
    course_id: str
    lesson_id: str | None = None
    type: str
    question: str
    options: list[str] = Field(default_factory=list)
    pairs: list[MatchingPair] = Field(default_factory=list)
    explanation: str
    order_index: int


class AdminExerciseResponse(ExerciseResponse):
    correct_answer: str


class LessonDetailResponse(BaseModel):
    lesson: LessonResponse
    progress: ProgressResponse | None = None
    exercises: list[ExerciseResponse]


# =============================================================================
# PROGRESS & EXERCISE SCHEMAS
# =============================================================================


class ProgressReport(BaseModel):
    """Player position report. Either ``percent`` or both times are required."""

    course_id: str
    lesson_id: str
    percent: int | None = Field(default=None, ge=0, le=100)
    current_time: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    duration: float | None = Field(default=None, allow_inf_nan=False)


class LessonRef(BaseModel):
    course_id: str
    lesson_id: str


class ProgressUpdateResponse(BaseModel):
    lesson_id: str
    percent: int
    written: bool
    completed: bool
    xp_awarded: bool = False
    xp_total: int | None = None


class AttemptRequest(BaseModel):
    answer: str
    matched: bool | None = None


class AttemptResponse(BaseModel):
    is_correct: bool
    explanation: str
    lesson_completed: bool


class PracticeResultRequest(BaseModel):
    is_correct: bool


class PracticeResultResponse(BaseModel):
    xp: int
    rank: RankResponse


# =============================================================================
# AI SCHEMAS
# =============================================================================


class ChatCreate(BaseModel):
    topic: str = Field(..., max_length=200)
    language_style: LanguageStyle = LanguageStyle.formal


class ChatResponse(BaseModel):
    id: str
    user_id: str
    topic: str
    language_style: str
    created_at: str
    last_message_at: str | None = None


class ChatMessageResponse(BaseModel):
    id: str
    chat_id: str
    role: str
    content: str
    created_at: str


class ChatDetailResponse(ChatResponse):
    messages: list[ChatMessageResponse]


class ChatMessageCreate(BaseModel):
    content: str = Field(..., max_length=4000)


class ChatExchangeResponse(BaseModel):
    user_message: ChatMessageResponse
    assistant_message: ChatMessageResponse


class QuestionRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=200)
    content: str = Field(default="", max_length=5000)
    count: int = Field(default=5, ge=1, le=MAX_QUESTIONS)


class QuestionResponse(BaseModel):
    question: str
    options: list[str]
    correct_answer: str
    explanation: str


# =============================================================================
# MESSAGING SCHEMAS
# =============================================================================


class MessageCreate(BaseModel):
    receiver_id: str
    content: str = Field(..., max_length=4000)
    client_id: str | None = Field(default=None, max_length=100)


class MessageResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    created_at: str
    client_id: str | None = None


class ConversationResponse(BaseModel):
    user_id: str
    profile: PublicProfileResponse
    last_message: MessageResponse
    unread_count: int


# =============================================================================
# NOTIFICATION SCHEMAS
# =============================================================================


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    type: str
    action_url: str | None = None
    action_text: str | None = None
    read: bool
    created_at: str


class UnreadCountResponse(BaseModel):
    unread_count: int


class TemplateCreate(BaseModel):
    title: str = Field(..., max_length=200)
    message: str = Field(..., max_length=2000)
    type: NotificationType = NotificationType.info
    action_url: str | None = Field(default=None, max_length=500)
    action_text: str | None = Field(default=None, max_length=100)


class TemplateResponse(BaseModel):
    id: str
    title: str
    message: str
    type: str
    action_url: str | None = None
    action_text: str | None = None
    created_at: str


class SendTemplateRequest(BaseModel):
    template_id: str
    user_ids: list[str]


class DirectNotificationRequest(TemplateCreate):
    user_id: str


class SendResultResponse(BaseModel):
    sent: int


class NotificationStatsResponse(BaseModel):
    total_notifications: int
    unread_notifications: int
    total_users: int


# =============================================================================
# ADMIN SCHEMAS
# =============================================================================


class AdminUserResponse(PublicProfileResponse):
    email: str
    is_banned: bool


class UserStatsResponse(BaseModel):
    total_users: int
    admin_users: int
    banned_users: int


class AdminChatResponse(ChatResponse):
    username: str
    full_name: str
    email: str
    message_count: int


class UploadResponse(BaseModel):
    bucket: str
    path: str
    url: str


# =============================================================================
# HEALTH
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
