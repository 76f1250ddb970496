# Generated migration for lead routing models

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Affiliate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='Advertiser',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('advertiser_type', models.CharField(db_index=True, max_length=50)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('daily_cap', models.PositiveIntegerField(blank=True, null=True)),
                ('hourly_cap', models.PositiveIntegerField(blank=True, null=True)),
                ('url', models.URLField(blank=True, default='', max_length=500)),
                ('api_key', models.CharField(blank=True, default='', max_length=255)),
                ('config', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Lead',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('firstname', models.CharField(max_length=100)),
                ('lastname', models.CharField(max_length=100)),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('mobile', models.CharField(max_length=50)),
                ('country_code', models.CharField(db_index=True, max_length=2)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('offer_name', models.CharField(blank=True, default='', max_length=255)),
                ('custom1', models.CharField(blank=True, default='', max_length=255)),
                ('custom2', models.CharField(blank=True, default='', max_length=255)),
                ('custom3', models.CharField(blank=True, default='', max_length=255)),
                ('comment', models.TextField(blank=True, default='')),
                ('status', models.CharField(choices=[('new', 'New'), ('contacted', 'Contacted'), ('qualified', 'Qualified'), ('converted', 'Converted'), ('lost', 'Lost'), ('rejected', 'Rejected')], db_index=True, default='new', max_length=20)),
                ('distributed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('affiliate', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='leads', to='distribution.affiliate')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AffiliateDistributionRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('country_code', models.CharField(max_length=2)),
                ('weight', models.PositiveIntegerField(blank=True, null=True)),
                ('daily_cap', models.PositiveIntegerField(blank=True, null=True)),
                ('hourly_cap', models.PositiveIntegerField(blank=True, null=True)),
                ('timezone', models.CharField(default='UTC', max_length=64)),
                ('start_time', models.TimeField(blank=True, null=True)),
                ('end_time', models.TimeField(blank=True, null=True)),
                ('weekly_schedule', models.JSONField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('advertiser', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='affiliate_rules', to='distribution.advertiser')),
                ('affiliate', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='distribution_rules', to='distribution.affiliate')),
            ],
        ),
        migrations.CreateModel(
            name='AdvertiserDistributionSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('base_weight', models.PositiveIntegerField(blank=True, null=True)),
                ('default_daily_cap', models.PositiveIntegerField(blank=True, null=True)),
                ('default_hourly_cap', models.PositiveIntegerField(blank=True, null=True)),
                ('countries', models.JSONField(blank=True, default=list)),
                ('affiliates', models.JSONField(blank=True, default=list)),
                ('start_time', models.TimeField(blank=True, null=True)),
                ('end_time', models.TimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('advertiser', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='distribution_setting', to='distribution.advertiser')),
            ],
        ),
        migrations.CreateModel(
            name='LeadDistribution',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('sent', 'Sent'), ('failed', 'Failed')], db_index=True, default='sent', max_length=10)),
                ('response', models.TextField(blank=True, default='')),
                ('external_lead_id', models.CharField(blank=True, max_length=255, null=True)),
                ('autologin_url', models.URLField(blank=True, max_length=1000, null=True)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('advertiser', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='distributions', to='distribution.advertiser')),
                ('affiliate', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='distributions', to='distribution.affiliate')),
                ('lead', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='distributions', to='distribution.lead')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='RejectedLead',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reason', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('advertiser', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rejections', to='distribution.advertiser')),
                ('lead', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rejections', to='distribution.lead')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AdvertiserEmailRejection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('email', models.EmailField(max_length=254)),
                ('rejection_reason', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('advertiser', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='email_rejections', to='distribution.advertiser')),
            ],
        ),
        migrations.CreateModel(
            name='LeadQueueItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('completed', 'Completed'), ('failed', 'Failed')], db_index=True, default='pending', max_length=20)),
                ('attempts', models.PositiveIntegerField(default=0)),
                ('max_attempts', models.PositiveIntegerField(default=3)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('claim_token', models.UUIDField(blank=True, db_index=True, null=True)),
                ('claimed_at', models.DateTimeField(blank=True, null=True)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('lead', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='queue_item', to='distribution.lead')),
            ],
            options={
                'ordering': ['created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='affiliatedistributionrule',
            index=models.Index(fields=['affiliate', 'country_code', 'is_active'], name='distributio_affilia_7c1d2e_idx'),
        ),
        migrations.AddIndex(
            model_name='leaddistribution',
            index=models.Index(fields=['advertiser', 'status', 'created_at'], name='distributio_adverti_3f8a9b_idx'),
        ),
        migrations.AddConstraint(
            model_name='advertiseremailrejection',
            constraint=models.UniqueConstraint(fields=('email', 'advertiser'), name='uniq_email_rejection_per_advertiser'),
        ),
        migrations.AddIndex(
            model_name='leadqueueitem',
            index=models.Index(fields=['status', 'created_at'], name='distributio_status_5e6f7a_idx'),
        ),
    ]
