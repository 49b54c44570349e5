from app.scrapers.base import ScraperFn
from app.scrapers.craigslist import fetch_craigslist
from app.scrapers.facebook import fetch_facebook
from app.scrapers.realtor import fetch_realtor
from app.scrapers.zillow import fetch_zillow

SCRAPERS = {
    "zillow": fetch_zillow,
    "craigslist": fetch_craigslist,
    "facebook": fetch_facebook,
    "realtor": fetch_realtor,
}

__all__ = [
    "SCRAPERS",
    "ScraperFn",
    "fetch_zillow",
    "fetch_craigslist",
    "fetch_facebook",
    "fetch_realtor",
]
