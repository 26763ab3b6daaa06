# Staff dashboard statistics
from collections import Counter
from datetime import datetime

from sqlalchemy import func

from shelter import db
from shelter.models import Animal, AbuseReport, AdoptionRequest, ReviewStatus


def _year_bounds(year):
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def _per_month(column, *criteria, year):
    start, end = _year_bounds(year)
    rows = db.session.query(column).filter(column >= start, column < end, *criteria).all()
    counts = Counter(value.strftime('%Y-%m') for (value,) in rows)
    months = sorted(counts)
    return {'labels': months, 'data': [counts[m] for m in months]}


def get_stats(year=None):
    year = year or datetime.utcnow().year
    species = (db.session.query(Animal.species, func.count(Animal.id))
               .group_by(Animal.species)
               .order_by(Animal.species)
               .all())
    years = sorted({created.year for (created,) in db.session.query(Animal.created_at).all()}, reverse=True)
    return {
        'year': year,
        'available_years': years,
        'total_animals': Animal.query.count(),
        'adopted_animals': Animal.query.filter_by(is_adopted=True).count(),
        'pending_reports': AbuseReport.query.filter_by(status=ReviewStatus.PENDING).count(),
        'pending_requests': AdoptionRequest.query.filter_by(status=ReviewStatus.PENDING).count(),
        'species_chart': {
            'labels': [name for name, _ in species],
            'data': [count for _, count in species],
        },
        'adoption_chart': _per_month(Animal.updated_at, Animal.is_adopted.is_(True), year=year),
        'report_chart': _per_month(AbuseReport.created_at, year=year),
    }
