"""Database models. Importing the package registers every mapper."""
from growguard.models.base import Base
from growguard.models.portfolios import Portfolio
from growguard.models.positions import Position
from growguard.models.transactions import Transaction
from growguard.models.discipline import DisciplineSettings
from growguard.models.reports import Report

__all__ = ['Base', 'Portfolio', 'Position', 'Transaction', 'DisciplineSettings', 'Report']
