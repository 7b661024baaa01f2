"""
Database models for the shared expense ledger.

There are no foreign keys between the credential, profile and ledger
tables. Every write is committed on its own and consistency across tables
is restored by compensating mutations.
"""
from datetime import datetime

from extensions import db


class Credential(db.Model):
    """Authentication record for a user (one per user id)."""

    __tablename__ = 'credentials'

    id = db.Column(db.String(36), primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    refresh_token = db.Column(db.Text, nullable=False)
    email_verified = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<Credential {self.id}: {self.email}>'


class User(db.Model):
    """Public profile of a user."""

    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True)
    display_name = db.Column(db.String(100), nullable=False, index=True)
    avatar_id = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<User {self.id}: {self.display_name}>'


class Expense(db.Model):
    """A zero-sum split of a cost between counterparties."""

    __tablename__ = 'expenses'
    __table_args__ = (
        db.Index('idx_expense_timestamp', 'timestamp', 'created_at'),
    )

    id = db.Column(db.String(36), primary_key=True)
    timestamp = db.Column(db.BigInteger, nullable=False)
    details = db.Column(db.Text, nullable=False, default='')
    total = db.Column(db.BigInteger, nullable=False)
    currency = db.Column(db.String(32), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    shares = db.relationship(
        'ExpenseShare',
        back_populates='expense',
        cascade='all, delete-orphan',
        order_by='ExpenseShare.position',
    )

    def __repr__(self):
        return f'<Expense {self.id}: {self.total} {self.currency}>'


class ExpenseShare(db.Model):
    """One counterparty's signed portion of an expense."""

    __tablename__ = 'expense_shares'
    __table_args__ = (
        db.Index('idx_share_counterparty_expense', 'counterparty_id', 'expense_id'),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    expense_id = db.Column(
        db.String(36), db.ForeignKey('expenses.id', ondelete='CASCADE'), nullable=False, index=True
    )
    counterparty_id = db.Column(db.String(36), nullable=False)
    cost = db.Column(db.BigInteger, nullable=False)
    position = db.Column(db.Integer, nullable=False)

    # Relationships
    expense = db.relationship('Expense', back_populates='shares')

    def __repr__(self):
        return f'<ExpenseShare {self.id}: {self.counterparty_id} {self.cost}>'


class FriendRequest(db.Model):
    """Pending friend request from sender to target."""

    __tablename__ = 'friend_requests'
    __table_args__ = (
        db.UniqueConstraint('sender_id', 'target_id', name='unique_friend_request'),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    sender_id = db.Column(db.String(36), nullable=False, index=True)
    target_id = db.Column(db.String(36), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<FriendRequest {self.sender_id} -> {self.target_id}>'


class Friendship(db.Model):
    """Mutual friendship. Ids are stored ordered (first_id < second_id)."""

    __tablename__ = 'friendships'
    __table_args__ = (
        db.UniqueConstraint('first_id', 'second_id', name='unique_friendship'),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    first_id = db.Column(db.String(36), nullable=False, index=True)
    second_id = db.Column(db.String(36), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<Friendship {self.first_id} <-> {self.second_id}>'


class PushToken(db.Model):
    """Push notification device token (latest one per user)."""

    __tablename__ = 'push_tokens'

    user_id = db.Column(db.String(36), primary_key=True)
    token = db.Column(db.String(255), nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<PushToken for User {self.user_id}>'


class EmailVerification(db.Model):
    """Pending email confirmation code."""

    __tablename__ = 'email_verification'

    email = db.Column(db.String(120), primary_key=True)
    code = db.Column(db.String(16), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def is_expired(self, lifetime):
        """Check if the code is older than the given lifetime."""
        return self.created_at + lifetime < datetime.utcnow()

    def __repr__(self):
        return f'<EmailVerification {self.email}>'
