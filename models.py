from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime
from bcrypt import hashpw, gensalt, checkpw
import uuid


db = SQLAlchemy()


def _uuid():
  return str(uuid.uuid4())

#Helper function for password hashing
def hash_password(password):
  """Return a bcrypt hash (utf-8 string) for the given password."""
  return hashpw(password.encode('utf-8'), gensalt()).decode('utf-8')

#Helper function to check password
def check_password(password, hashed_password):
  """Return True if password matches the stored bcrypt hashed password."""
  if not hashed_password:
    return False
  return checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))


class User(db.Model, UserMixin):
  __tablename__ = 'users'

  VALID_ROLES = ['user', 'resident', 'admin']
  ROLE_ADMIN = 'admin'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  email = db.Column(db.String(255), unique=True)
  password_hash = db.Column(db.String(255))  # NULL for social-only accounts
  first_name = db.Column(db.String(100))
  last_name = db.Column(db.String(100))
  profile_image_url = db.Column(db.String(1000))
  role = db.Column(db.String(20), nullable=False, default='user')

  google_id = db.Column(db.String(255), unique=True)
  naver_id = db.Column(db.String(255), unique=True)
  kakao_id = db.Column(db.String(255), unique=True)

  is_verified = db.Column(db.Boolean, default=False)
  real_name = db.Column(db.String(100))
  phone_number = db.Column(db.String(30))

  created_at = db.Column(db.DateTime, default=datetime.utcnow)
  updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

  def set_password(self, password):
    self.password_hash = hash_password(password)

  def check_password(self, password):
    return check_password(password, self.password_hash)

  def set_role(self, role):
    """Set role after normalising to lower case and validating."""
    normalized = (role or '').strip().lower()
    if normalized not in self.VALID_ROLES:
      raise ValueError(f"Invalid role '{role}'. Must be one of: {', '.join(self.VALID_ROLES)}")
    self.role = normalized

  @property
  def is_admin(self):
    return self.role == self.ROLE_ADMIN

  @property
  def display_name(self):
    name = ' '.join(p for p in (self.first_name, self.last_name) if p)
    if name:
      return name
    if self.email:
      return self.email.split('@', 1)[0]
    return '익명'


class Project(db.Model):
  """Housing projects shown on the business pages."""
  __tablename__ = 'projects'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  title = db.Column(db.String(255), nullable=False)
  title_en = db.Column(db.String(255))
  category = db.Column(db.JSON, nullable=False)  # list of category tags
  location = db.Column(db.String(255), nullable=False)
  year = db.Column(db.Integer, nullable=False)
  completion_month = db.Column(db.Integer)
  units = db.Column(db.Integer)
  scale = db.Column(db.String(255))
  site_area = db.Column(db.String(100))
  gross_floor_area = db.Column(db.String(100))
  description = db.Column(db.Text, nullable=False)
  image_url = db.Column(db.String(1000))
  pdf_url = db.Column(db.String(1000))
  related_articles = db.Column(db.JSON)  # [{title, url}]
  partner_logos = db.Column(db.JSON)
  featured = db.Column(db.Boolean, default=False)
  display_order = db.Column(db.Integer, default=0)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)

  subprojects = db.relationship('Subproject', backref='parent_project', cascade='all, delete-orphan',
                                order_by='Subproject.display_order')
  images = db.relationship('ProjectImage', backref='project', cascade='all, delete-orphan',
                           order_by='ProjectImage.display_order')


class Subproject(db.Model):
  __tablename__ = 'subprojects'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  parent_project_id = db.Column(db.String(36), db.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
  name = db.Column(db.String(255), nullable=False)
  location = db.Column(db.String(255))
  units = db.Column(db.Integer)
  scale = db.Column(db.String(255))
  site_area = db.Column(db.String(100))
  gross_floor_area = db.Column(db.String(100))
  completion_year = db.Column(db.Integer)
  completion_month = db.Column(db.Integer)
  display_order = db.Column(db.Integer, default=0)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class ProjectImage(db.Model):
  __tablename__ = 'project_images'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  project_id = db.Column(db.String(36), db.ForeignKey('projects.id', ondelete='CASCADE'), nullable=False, index=True)
  image_url = db.Column(db.String(1000), nullable=False)
  display_order = db.Column(db.Integer, default=0)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Event(db.Model):
  """Community events (행사)."""
  __tablename__ = 'events'

  STATUS_LABELS = {'upcoming': '예정', 'ongoing': '진행중', 'completed': '종료'}

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  title = db.Column(db.String(255), nullable=False)
  description = db.Column(db.Text)
  date = db.Column(db.DateTime, nullable=False)
  location = db.Column(db.String(255), nullable=False)
  status = db.Column(db.String(20), default='upcoming')
  image_url = db.Column(db.String(1000))
  registration_url = db.Column(db.String(1000))
  published = db.Column(db.Boolean, default=True)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class ResidentProgram(db.Model):
  """Resident programs: small-group support and space-sharing contests."""
  __tablename__ = 'resident_programs'

  TYPE_LABELS = {'small-group': '소모임 지원', 'space-sharing': '공간 공유 공모전'}
  STATUS_LABELS = {'open': '모집중', 'closed': '모집마감', 'completed': '종료'}

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  program_type = db.Column(db.String(30), nullable=False)
  title = db.Column(db.String(255), nullable=False)
  description = db.Column(db.Text, nullable=False)
  content = db.Column(db.Text)
  image_url = db.Column(db.String(1000))
  start_date = db.Column(db.DateTime)
  end_date = db.Column(db.DateTime)
  max_participants = db.Column(db.Integer)
  status = db.Column(db.String(20), default='open')
  published = db.Column(db.Boolean, default=True)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)

  applications = db.relationship('ProgramApplication', backref='program', cascade='all, delete-orphan')


class ProgramApplication(db.Model):
  __tablename__ = 'program_applications'

  VALID_STATUSES = ['pending', 'approved', 'rejected']

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  program_id = db.Column(db.String(36), db.ForeignKey('resident_programs.id', ondelete='CASCADE'), nullable=False, index=True)
  user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), index=True)
  name = db.Column(db.String(100), nullable=False)
  email = db.Column(db.String(255), nullable=False)
  phone = db.Column(db.String(30))
  message = db.Column(db.Text)
  status = db.Column(db.String(20), default='pending')
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class HousingRecruitment(db.Model):
  """Tenant recruitment notices (입주자 모집)."""
  __tablename__ = 'housing_recruitments'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  title = db.Column(db.String(255), nullable=False)
  content = db.Column(db.Text, nullable=False)
  file_url = db.Column(db.String(1000))
  published = db.Column(db.Boolean, default=False)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)
  updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Article(db.Model):
  """Insight articles: columns, media coverage and library resources."""
  __tablename__ = 'articles'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  title = db.Column(db.String(255), nullable=False)
  excerpt = db.Column(db.Text, nullable=False)
  content = db.Column(db.Text, nullable=False)  # sanitized HTML
  author = db.Column(db.String(100), nullable=False)
  category = db.Column(db.String(20), nullable=False)
  featured = db.Column(db.Boolean, default=False)
  image_url = db.Column(db.String(1000))
  file_url = db.Column(db.String(1000))
  source_url = db.Column(db.String(1000))
  published_at = db.Column(db.DateTime, default=datetime.utcnow)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class SocialAccount(db.Model):
  __tablename__ = 'social_accounts'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  name = db.Column(db.String(100), nullable=False)
  platform = db.Column(db.String(20), nullable=False)
  username = db.Column(db.String(100))
  profile_url = db.Column(db.String(1000))
  profile_image_url = db.Column(db.String(1000))
  is_active = db.Column(db.Boolean, default=True)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class CommunityPost(db.Model):
  """Posts mirrored from the company's social accounts."""
  __tablename__ = 'community_posts'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  account_id = db.Column(db.String(36), db.ForeignKey('social_accounts.id', ondelete='SET NULL'))
  image_url = db.Column(db.String(1000))
  images = db.Column(db.JSON)
  caption = db.Column(db.Text)
  hashtags = db.Column(db.JSON)
  location = db.Column(db.String(255))
  likes = db.Column(db.Integer, nullable=False, default=0)
  comment_count = db.Column(db.Integer, nullable=False, default=0)
  source_url = db.Column(db.String(1000))
  posted_at = db.Column(db.DateTime, default=datetime.utcnow)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)

  comments = db.relationship('CommunityPostComment', backref='post', cascade='all, delete-orphan',
                             order_by='CommunityPostComment.created_at')


class CommunityPostComment(db.Model):
  __tablename__ = 'community_post_comments'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  post_id = db.Column(db.String(36), db.ForeignKey('community_posts.id', ondelete='CASCADE'), nullable=False, index=True)
  user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))
  nickname = db.Column(db.String(100), nullable=False)
  content = db.Column(db.Text, nullable=False)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class ResidentReporter(db.Model):
  """Articles submitted by resident reporters; public once approved."""
  __tablename__ = 'resident_reporters'

  VALID_STATUSES = ['pending', 'approved', 'rejected']

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), index=True)
  title = db.Column(db.String(255), nullable=False)
  content = db.Column(db.Text, nullable=False)  # Markdown
  author_name = db.Column(db.String(100), nullable=False)
  image_url = db.Column(db.String(1000))
  status = db.Column(db.String(20), nullable=False, default='pending')
  likes = db.Column(db.Integer, nullable=False, default=0)
  comment_count = db.Column(db.Integer, nullable=False, default=0)
  approved_at = db.Column(db.DateTime)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)
  updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

  comments = db.relationship('ResidentReporterComment', backref='article', cascade='all, delete-orphan',
                             order_by='ResidentReporterComment.created_at')


class ResidentReporterComment(db.Model):
  __tablename__ = 'resident_reporter_comments'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  article_id = db.Column(db.String(36), db.ForeignKey('resident_reporters.id', ondelete='CASCADE'), nullable=False, index=True)
  user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))
  nickname = db.Column(db.String(100), nullable=False)
  content = db.Column(db.Text, nullable=False)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Partner(db.Model):
  __tablename__ = 'partners'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  name = db.Column(db.String(255), nullable=False)
  logo_url = db.Column(db.String(1000), nullable=False)
  category = db.Column(db.String(100), nullable=False)  # government, finance, institution
  display_order = db.Column(db.Integer, default=0)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class HistoryMilestone(db.Model):
  __tablename__ = 'history_milestones'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  year = db.Column(db.Integer, nullable=False)
  month = db.Column(db.Integer)
  title = db.Column(db.String(255), nullable=False)
  description = db.Column(db.Text, nullable=False)
  image_url = db.Column(db.String(1000))
  link = db.Column(db.String(1000))
  is_highlight = db.Column(db.Boolean, default=False)
  display_order = db.Column(db.Integer, default=0)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class Inquiry(db.Model):
  """Contact form submissions. Write-once."""
  __tablename__ = 'inquiries'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  type = db.Column(db.String(20), nullable=False)
  name = db.Column(db.String(100), nullable=False)
  email = db.Column(db.String(255), nullable=False)
  phone = db.Column(db.String(30))
  company = db.Column(db.String(255))
  message = db.Column(db.Text, nullable=False)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class PageImage(db.Model):
  """Image slot on a static page, e.g. ('home', 'hero'). Multi-image slots share a key."""
  __tablename__ = 'page_images'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  page_key = db.Column(db.String(100), nullable=False, index=True)
  image_key = db.Column(db.String(100), nullable=False)
  image_url = db.Column(db.String(1000), nullable=False)
  alt_text = db.Column(db.String(255))
  display_order = db.Column(db.Integer, default=0)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)


class EditablePage(db.Model):
  __tablename__ = 'editable_pages'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  slug = db.Column(db.String(100), unique=True, nullable=False)
  title = db.Column(db.String(255))
  content = db.Column(db.Text)
  meta_description = db.Column(db.String(500))
  created_at = db.Column(db.DateTime, default=datetime.utcnow)
  updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SiteSetting(db.Model):
  """Structured configuration blobs keyed by name (company_stats, footer_settings, ...)."""
  __tablename__ = 'site_settings'

  id = db.Column(db.String(36), primary_key=True, default=_uuid)
  key = db.Column(db.String(100), unique=True, nullable=False)
  value = db.Column(db.JSON)
  created_at = db.Column(db.DateTime, default=datetime.utcnow)
  updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
