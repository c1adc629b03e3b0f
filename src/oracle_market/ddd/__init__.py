from oracle_market.ddd.commands import Command, Query
from oracle_market.ddd.domain_module import DomainModule

__all__ = ["Command", "Query", "DomainModule"]
