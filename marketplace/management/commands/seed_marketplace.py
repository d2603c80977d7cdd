# Seed Marketplace Management Command
import random
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from faker import Faker

from marketplace.models import Category, Product, User

CATEGORIES = [
    'ELECTRONICS',
    'FURNITURE',
    'HOME_APPLIANCES',
    'SPORTING_GOODS',
    'OUTDOOR',
    'TOYS',
    'BOOKS',
    'CLOTHING',
    'AUTOMOTIVE',
    'TOOLS',
]

SAMPLE_USERS = [
    ('john.doe@example.com', 'John', 'Doe'),
    ('jane.smith@example.com', 'Jane', 'Smith'),
    ('mike.wilson@example.com', 'Mike', 'Wilson'),
    ('sarah.brown@example.com', 'Sarah', 'Brown'),
]

# (name, description, price_buy, price_rent, category, index into SAMPLE_USERS)
SAMPLE_PRODUCTS = [
    ('MacBook Pro 16"',
     'Apple MacBook Pro with M3 chip, perfect for professional work and creative tasks.',
     '2499', '150', 'ELECTRONICS', 0),
    ('Modern Office Desk',
     'Spacious wooden desk with built-in drawers, perfect for home office setup.',
     '450', '30', 'FURNITURE', 1),
    ('KitchenAid Stand Mixer',
     'Professional-grade stand mixer for all your baking needs.',
     '380', '25', 'HOME_APPLIANCES', 0),
    ('Mountain Bike',
     'High-quality mountain bike with 21-speed gear system, perfect for trails.',
     '750', '40', 'SPORTING_GOODS', 2),
    ('Camping Tent (4-person)',
     'Waterproof camping tent that comfortably sleeps 4 people.',
     '200', '15', 'OUTDOOR', 1),
    ('LEGO Creator Set',
     'Large LEGO Creator set with over 1000 pieces, great for kids and adults.',
     '120', '8', 'TOYS', 3),
    ('Programming Books Collection',
     'Complete collection of modern programming books including React, Node.js, and TypeScript.',
     '200', '12', 'BOOKS', 2),
    ('Winter Jacket',
     'High-quality winter jacket with down insulation, size L.',
     '180', '10', 'CLOTHING', 3),
    ('Cordless Drill Set',
     'Professional cordless drill with complete bit set and carrying case.',
     '150', '12', 'TOOLS', 1),
    ('Gaming Chair',
     'Ergonomic gaming chair with lumbar support and adjustable height.',
     '300', '20', 'FURNITURE', 0),
]


class Command(BaseCommand):
    help = 'Loads sample categories, users and products. Safe to run more than once.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--password',
            default='password123',
            help='Password given to every seeded user.',
        )
        parser.add_argument(
            '--random',
            type=int,
            default=0,
            metavar='N',
            help='Also create N random products owned by the sample users.',
        )
        parser.add_argument(
            '--seed',
            type=int,
            default=None,
            help='Seed for the random generator, for reproducible --random output.',
        )

    def handle(self, *args, **options):
        extra = options['random']
        if extra < 0:
            raise CommandError('--random must be zero or a positive number.')

        fake = Faker()
        rng = random.Random(options['seed'])
        if options['seed'] is not None:
            fake.seed_instance(options['seed'])

        with transaction.atomic():
            categories = self.seed_categories()
            users = self.seed_users(options['password'])
            created = self.seed_products(categories, users)
            if extra:
                created += self.seed_random_products(fake, rng, categories, users, extra)

        self.stdout.write(self.style.SUCCESS('Database seeded successfully.'))
        self.stdout.write(f'  {len(categories)} categories')
        self.stdout.write(f'  {len(users)} users')
        self.stdout.write(f'  {created} new products')

    def seed_categories(self):
        self.stdout.write('Creating categories...')
        categories = {}
        for name in CATEGORIES:
            category, created = Category.objects.get_or_create(name=name)
            categories[name] = category
            if created:
                self.stdout.write(f'  Created category: {name}')
        return categories

    def seed_users(self, password):
        self.stdout.write('Creating sample users...')
        users = []
        for email, first_name, last_name in SAMPLE_USERS:
            user = User.objects.filter(email=email).first()
            if user is None:
                user = User.objects.create_user(
                    username=email,
                    email=email,
                    password=password,
                    first_name=first_name,
                    last_name=last_name,
                )
                self.stdout.write(f'  Created user: {first_name} {last_name} ({email})')
            users.append(user)
        return users

    def seed_products(self, categories, users):
        self.stdout.write('Creating sample products...')
        created = 0
        for name, description, price_buy, price_rent, category, owner_index in SAMPLE_PRODUCTS:
            owner = users[owner_index]
            if Product.objects.filter(name=name, owner=owner).exists():
                continue

            product = Product.objects.create(
                owner=owner,
                name=name,
                description=description,
                price_buy=Decimal(price_buy),
                price_rent=Decimal(price_rent),
                rent_option=Product.DAILY,
            )
            product.categories.add(categories[category])
            created += 1
            self.stdout.write(f'  Created product: {name} by {owner.first_name} {owner.last_name}')
        return created

    def seed_random_products(self, fake, rng, categories, users, count):
        self.stdout.write(f'Creating {count} random products...')
        category_list = list(categories.values())

        for _ in range(count):
            price_buy = Decimal(rng.randint(20, 2000))
            rent_option = rng.choice([choice for choice, _label in Product.RENT_OPTION_CHOICES])
            product = Product.objects.create(
                owner=rng.choice(users),
                name=fake.catch_phrase()[:200],
                description=fake.paragraph(),
                price_buy=price_buy,
                price_rent=(price_buy / 20).quantize(Decimal('0.01')),
                rent_option=rent_option,
            )
            product.categories.add(*rng.sample(category_list, k=rng.randint(1, 2)))

        return count
