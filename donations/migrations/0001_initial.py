import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import donations.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('name', models.CharField(blank=True, default='', help_text='Full name shown to organizations and couriers.', max_length=100, verbose_name='name')),
                ('phone_number', models.CharField(blank=True, default='', help_text='Optional. Enter phone number in international format.', max_length=20, validators=[donations.validators.validate_phone_number], verbose_name='phone number')),
                ('address', models.CharField(blank=True, default='', help_text='Postal address used when shipping donations.', max_length=300, verbose_name='address')),
                ('user_type', models.CharField(choices=[('donor', 'Donor'), ('organization', 'Organization')], default='donor', help_text='Whether the account donates clothing or represents an organization.', max_length=20, verbose_name='user type')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['email'], name='user_email_idx'),
                    models.Index(fields=['user_type'], name='user_type_idx'),
                ],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Organization',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='name')),
                ('phone_number', models.CharField(blank=True, default='', max_length=20, validators=[donations.validators.validate_phone_number], verbose_name='phone number')),
                ('address', models.CharField(blank=True, default='', max_length=300, verbose_name='address')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', help_text='Platform review status of the organization', max_length=20, verbose_name='status')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('user', models.OneToOneField(blank=True, help_text='Account that acts on behalf of the organization', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='organization', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'organization',
                'verbose_name_plural': 'organizations',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['status'], name='organization_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Donation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('match_type', models.CharField(choices=[('direct', 'Direct match'), ('indirect', 'Indirect match')], help_text='Whether the donor chose the organization', max_length=20, verbose_name='match type')),
                ('delivery_method', models.CharField(choices=[('courier', 'Courier pickup'), ('drop_off', 'Drop-off')], default='courier', max_length=20, verbose_name='delivery method')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='status')),
                ('admin_decision', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=20, verbose_name='admin decision')),
                ('cancel_reason', models.TextField(blank=True, default='', verbose_name='cancel reason')),
                ('is_anonymous', models.BooleanField(default=False, verbose_name='anonymous')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('donor', models.ForeignKey(help_text='User offering the donation', on_delete=django.db.models.deletion.CASCADE, related_name='donations', to=settings.AUTH_USER_MODEL)),
                ('organization', models.ForeignKey(blank=True, help_text='Organization receiving the donation', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='donations', to='donations.organization')),
            ],
            options={
                'verbose_name': 'donation',
                'verbose_name_plural': 'donations',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='donation_status_idx'),
                    models.Index(fields=['admin_decision'], name='donation_decision_idx'),
                    models.Index(fields=['match_type'], name='donation_match_type_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DonationItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('gender_type', models.CharField(choices=[('men', 'Men'), ('women', 'Women'), ('unisex', 'Unisex'), ('kids', 'Kids')], max_length=10, verbose_name='gender')),
                ('main_category', models.CharField(choices=[('top', 'Top'), ('bottom', 'Bottom'), ('outerwear', 'Outerwear'), ('dress', 'Dress'), ('shoes', 'Shoes'), ('accessory', 'Accessory'), ('other', 'Other')], max_length=20, verbose_name='category')),
                ('detail_category', models.CharField(blank=True, default='', max_length=50, verbose_name='detail category')),
                ('size', models.CharField(choices=[('xs', 'XS'), ('s', 'S'), ('m', 'M'), ('l', 'L'), ('xl', 'XL'), ('xxl', 'XXL'), ('free', 'Free size')], max_length=10, verbose_name='size')),
                ('description', models.TextField(blank=True, default='', validators=[django.core.validators.MaxLengthValidator(500)], verbose_name='description')),
                ('image_urls', models.JSONField(blank=True, default=list, help_text='Storage URLs of the item photos, first one is the cover', verbose_name='image URLs')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('donation', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='item', to='donations.donation')),
            ],
            options={
                'verbose_name': 'donation item',
                'verbose_name_plural': 'donation items',
            },
        ),
        migrations.CreateModel(
            name='Delivery',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sender_name', models.CharField(max_length=100, verbose_name='sender name')),
                ('sender_phone', models.CharField(max_length=20, verbose_name='sender phone')),
                ('sender_address', models.CharField(max_length=300, verbose_name='sender address')),
                ('receiver_name', models.CharField(max_length=200, verbose_name='receiver name')),
                ('receiver_phone', models.CharField(max_length=20, verbose_name='receiver phone')),
                ('receiver_address', models.CharField(max_length=300, verbose_name='receiver address')),
                ('carrier', models.CharField(blank=True, default='', max_length=50, verbose_name='carrier')),
                ('tracking_number', models.CharField(blank=True, default='', max_length=100, verbose_name='tracking number')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('shipped', 'Shipped'), ('delivered', 'Delivered')], default='pending', max_length=20, verbose_name='status')),
                ('shipped_at', models.DateTimeField(blank=True, null=True, verbose_name='shipped at')),
                ('delivered_at', models.DateTimeField(blank=True, null=True, verbose_name='delivered at')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('donation', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='delivery', to='donations.donation')),
            ],
            options={
                'verbose_name': 'delivery',
                'verbose_name_plural': 'deliveries',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='delivery_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('donation_approved', 'Donation approved'), ('donation_rejected', 'Donation rejected'), ('donation_matched', 'Donation matched'), ('donation_cancelled', 'Donation cancelled'), ('delivery_updated', 'Delivery updated')], max_length=30, verbose_name='kind')),
                ('title', models.CharField(max_length=200, verbose_name='title')),
                ('body', models.TextField(blank=True, default='', verbose_name='body')),
                ('reference_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='reference id')),
                ('reference_type', models.CharField(blank=True, default='', max_length=50, verbose_name='reference type')),
                ('is_read', models.BooleanField(default=False, verbose_name='read')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'notification',
                'verbose_name_plural': 'notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['recipient', 'is_read'], name='notification_inbox_idx'),
                ],
            },
        ),
    ]
