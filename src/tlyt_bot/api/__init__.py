"""HTTP surface: cron triggers and dashboard stats."""
