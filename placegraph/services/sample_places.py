"""
Built-in sample places served when no graph store is available.
"""

from datetime import datetime
from typing import List

from ..models.core import Location, Place


def sample_places() -> List[Place]:
    """Return a fresh copy of the sample collection."""
    return [
        Place(place_id='ChIJN1t_tDeuEmsRUsoyG83frY4',
              name='Sydney Opera House',
              address='Bennelong Point, Sydney NSW 2000, Australia',
              category='Landmark',
              rating=4.7,
              user_rating=5,
              location=Location(lat=-33.8568, lng=151.2153),
              tags=['iconic', 'architecture', 'must-visit'],
              notes='Amazing architecture and great views',
              sentiment='positive',
              last_visited=datetime(2024, 1, 15),
              visit_count=3),
        Place(place_id='ChIJ3S-JXmauEmsRUcIaWtf4MzE',
              name='Bondi Beach',
              address='Bondi Beach NSW 2026, Australia',
              category='Beach',
              rating=4.5,
              user_rating=4,
              location=Location(lat=-33.8915, lng=151.2767),
              tags=['beach', 'surfing', 'relaxing'],
              notes='Great for surfing and sunbathing',
              sentiment='positive',
              last_visited=datetime(2024, 1, 10),
              visit_count=5),
        Place(place_id='ChIJP3Sa8ziYEmsRUKgyFmh9AQM',
              name='Royal Botanic Garden',
              address='Mrs Macquaries Rd, Sydney NSW 2000, Australia',
              category='Park',
              rating=4.7,
              user_rating=4,
              location=Location(lat=-33.8642, lng=151.2166),
              tags=['garden', 'quiet', 'picnic'],
              notes='Lovely walk around the harbour',
              sentiment='positive',
              last_visited=datetime(2023, 11, 2, 10, 30),
              visit_count=2),
        Place(place_id='ChIJ8S0Ywz-uEmsRdNDcvXZ1jDs',
              name='Art Gallery of New South Wales',
              address='Art Gallery Rd, Sydney NSW 2000, Australia',
              category='Gallery',
              rating=4.6,
              user_rating=4,
              location=Location(lat=-33.8688, lng=151.2174),
              tags=['art', 'free entry'],
              sentiment='positive',
              last_visited=datetime(2023, 9, 16, 14, 0),
              visit_count=1),
        Place(place_id='ChIJFfyzTTeuEmsRuMxvFyNRfbk',
              name='The Grounds of Alexandria',
              address='7a/2 Huntley St, Alexandria NSW 2015, Australia',
              category='Cafe',
              rating=4.4,
              user_rating=3,
              location=Location(lat=-33.9107, lng=151.1947),
              tags=['brunch', 'coffee', 'crowded'],
              notes='Good coffee, long queues on weekends',
              sentiment='neutral',
              last_visited=datetime(2023, 12, 3, 9, 15),
              visit_count=2),
        Place(place_id='ChIJ6Qb8LDiuEmsRMHIlFv_P0u8',
              name='Manly Beach',
              address='North Steyne, Manly NSW 2095, Australia',
              category='Beach',
              rating=4.6,
              location=Location(lat=-33.7975, lng=151.2880),
              tags=['beach', 'ferry ride'],
              notes='Take the ferry from Circular Quay',
              sentiment='positive',
              last_visited=datetime(2023, 2, 18, 11, 0),
              visit_count=1),
        Place(place_id='ChIJ9xO6Hj-uEmsRZzSlrn7P5mU',
              name='Museum of Contemporary Art',
              address='140 George St, The Rocks NSW 2000, Australia',
              category='Museum',
              rating=4.4,
              user_rating=2,
              location=Location(lat=-33.8599, lng=151.2090),
              tags=['art', 'modern'],
              notes='Not really my thing',
              sentiment='negative',
              last_visited=datetime(2022, 8, 7, 15, 45),
              visit_count=1),
        Place(place_id='ChIJT6m7HcOuEmsRB0ryB6kSGPc',
              name='Blue Mountains National Park',
              address='Katoomba NSW 2780, Australia',
              category='Hiking',
              rating=4.8,
              user_rating=5,
              location=Location(lat=-33.7150, lng=150.3119),
              tags=['hiking', 'outdoor', 'day trip'],
              notes='Three Sisters lookout at sunrise',
              sentiment='positive',
              last_visited=datetime(2023, 10, 21, 7, 0),
              visit_count=4),
        Place(place_id='ChIJdZMfSRauEmsRpl6xt6YqvZA',
              name='Opera Bar',
              address='Lower Concourse Level, Bennelong Point, Sydney NSW 2000, Australia',
              category='Bar',
              rating=4.3,
              user_rating=4,
              location=Location(lat=-33.8587, lng=151.2125),
              tags=['drinks', 'harbour view', 'nightlife'],
              sentiment='positive',
              last_visited=datetime(2024, 1, 15, 19, 30),
              visit_count=6),
        Place(place_id='ChIJ5aI8lzquEmsRcD9FQ2dGpI8',
              name='State Library of NSW',
              address='Macquarie St, Sydney NSW 2000, Australia',
              category='Library',
              rating=4.7,
              location=Location(lat=-33.8662, lng=151.2128),
              tags=['reading room', 'quiet'],
              notes='Beautiful Mitchell reading room',
              sentiment='positive'),
    ]
