"""pagegen - SEO metadata management and bulk AI page generation."""

__version__ = "1.0.0"
