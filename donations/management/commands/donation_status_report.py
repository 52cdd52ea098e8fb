# Donation Status Report Management Command
from django.core.management.base import BaseCommand, CommandError

from donations.models import Donation, User
from donations.projection import ACTIVE_LABELS, LABELS, project_status


class Command(BaseCommand):
    help = 'Prints the number of donations per display status.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--donor',
            metavar='EMAIL',
            help='Only count donations of the donor with this email address.',
        )
        parser.add_argument(
            '--include-completed',
            action='store_true',
            help='Also count completed donations.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for iterating over donations.',
        )

    def handle(self, *args, **options):
        donations = Donation.objects.select_related('organization').prefetch_related('delivery')

        donor_email = options['donor']
        if donor_email:
            try:
                donor = User.objects.get(email__iexact=donor_email)
            except User.DoesNotExist:
                raise CommandError(f'No user with email {donor_email}.')
            donations = donations.for_donor(donor)
            self.stdout.write(f'Donations of {donor.email}:')

        labels = LABELS if options['include_completed'] else ACTIVE_LABELS
        counts = {label: 0 for label in labels}
        total = 0

        for donation in donations.iterator(chunk_size=options['batch_size']):
            label = project_status(donation).label
            if label not in counts:
                continue
            counts[label] += 1
            total += 1

        for label in labels:
            self.stdout.write(f'  {label:<20} {counts[label]}')

        self.stdout.write(self.style.SUCCESS(f'Total: {total}'))
